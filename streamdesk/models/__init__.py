from streamdesk.models.client_account import ClientAccount
from streamdesk.models.code import Code

__all__ = [
    "ClientAccount",
    "Code",
]
