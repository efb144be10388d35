"""
상태 저장소 모듈
로비 큐, 연결 라우팅, 매치 타이머 등 프로세스 간 공유 상태
"""
from codeduel.domain.state.adapters.base import StateBackend
from codeduel.domain.state.factory import create_state_backend
from codeduel.domain.state.store import StateStore

__all__ = [
    "create_state_backend",
    "StateBackend",
    "StateStore",
]
