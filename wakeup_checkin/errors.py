class CheckInAppError(Exception):
    """Base class for failures the API reports to the user instead of crashing."""

    status_code = 400
    message = "요청을 처리할 수 없습니다."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ConfigurationError(CheckInAppError):
    status_code = 500
    message = "명언 목록이 비어 있습니다."


class MismatchError(CheckInAppError):
    status_code = 422
    message = "명언을 정확히 입력해주세요."


class DuplicateCheckInError(CheckInAppError):
    status_code = 409
    message = "오늘은 이미 기상 인증을 완료했습니다."


class SubmissionFailure(CheckInAppError):
    status_code = 503
    message = "인증 기록을 저장하지 못했습니다. 잠시 후 다시 시도해주세요."


class UserNotFoundError(CheckInAppError):
    status_code = 404
    message = "사용자를 찾을 수 없습니다."


class NotSignedInError(CheckInAppError):
    status_code = 401
    message = "로그인이 필요합니다."


class InvalidRequestError(CheckInAppError):
    status_code = 400
    message = "요청 형식이 올바르지 않습니다."
