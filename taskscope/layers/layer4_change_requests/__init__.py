from .manager import ChangeRequestManager, next_change_request_id

__all__ = ["ChangeRequestManager", "next_change_request_id"]
