from .database import init_db, get_db, get_db_path, set_db_path
from .otp import OtpCode
from .question import Question, CatalogError
from .submission import Submission

__all__ = ['init_db', 'get_db', 'get_db_path', 'set_db_path', 'OtpCode', 'Question', 'CatalogError', 'Submission']
