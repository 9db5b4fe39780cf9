"""模型集合。"""

from .auth_user import AuthUser, BanState
from .rejection import Rejection, RejectionCode

__all__ = ["AuthUser", "BanState", "Rejection", "RejectionCode"]
