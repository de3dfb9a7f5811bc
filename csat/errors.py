class SurveyError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message, issues=None):
        super().__init__(message)
        self.message = message
        self.issues = issues

    def to_dict(self):
        body = {'error': self.message}
        if self.issues:
            body['issues'] = self.issues
        return body


class ValidationError(SurveyError):
    """Raised when a payload is malformed or incomplete."""
    status_code = 400


class AuthorizationError(SurveyError):
    """Raised for missing, invalid or expired credentials and unverified identities."""
    status_code = 401


class NotFoundError(SurveyError):
    status_code = 404


class ConflictError(SurveyError):
    """Raised when an email already has a stored submission."""
    status_code = 409


class RateLimitError(SurveyError):
    status_code = 429
