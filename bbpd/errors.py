"""bbpd 예외 계층.

설정 오류(잘못된 입력)와 수치적 퇴화(본드 없는 입자, 길이 0 본드)를
구분한다. 입출력 실패는 표준 OSError 그대로 호출자에게 전달된다.
"""


class BBPDError(Exception):
    """bbpd 예외 기본 클래스."""


class ConfigurationError(BBPDError, ValueError):
    """시뮬레이션 시작 전에 검출되는 잘못된 입력."""


class DegenerateTopologyError(BBPDError, ArithmeticError):
    """본드 토폴로지가 수치적으로 퇴화한 경우.

    - 모든 입자가 본드를 갖지 않아 안정 시간 간격을 정할 수 없음
    - 변형 중 두 입자가 겹쳐 현재 본드 길이가 0이 됨
    """
