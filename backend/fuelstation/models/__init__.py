from .auth import User, SessionToken
from .discounts import DiscountRecord, PlateRequest
from .handover import ChecklistItem, ShiftHandover, ChecklistAnswer
from .sales import DiscountSale
from .cleaning import CleaningOperation, CleaningLog, cleaning_log_operations

__all__ = [
    'User', 'SessionToken',
    'DiscountRecord', 'PlateRequest',
    'ChecklistItem', 'ShiftHandover', 'ChecklistAnswer',
    'DiscountSale',
    'CleaningOperation', 'CleaningLog', 'cleaning_log_operations',
]
