"""
예외 클래스 정의

순환 import를 피하기 위해 모든 도메인 예외를 한 곳에 모아둡니다.
"""


class DuelError(Exception):
    """모든 도메인 예외의 기본 클래스"""

    error_code = "DUEL_ERROR"


class ValidationError(DuelError):
    """요청 필드 누락/형식 오류, 메시지 길이 초과"""

    error_code = "VALIDATION_ERROR"


class AuthError(DuelError):
    """토큰 누락 또는 검증 실패"""

    error_code = "AUTH_ERROR"


class ConflictError(DuelError):
    """현재 상태와 맞지 않는 요청 (진행 중이 아닌 매치 종료, 자기 매치 관전 등)"""

    error_code = "CONFLICT"


class NotFoundError(DuelError):
    """매치/플레이어/문제를 찾을 수 없음"""

    error_code = "NOT_FOUND"


class ExecutionError(DuelError):
    """컴파일/런타임 실패, 지원하지 않는 언어, 샌드박스 연결 실패"""

    error_code = "EXECUTION_ERROR"


class InfraError(DuelError):
    """상태 저장소 또는 영속 저장소 사용 불가"""

    error_code = "INFRA_ERROR"
