from .locations import Location
from .auth import User, SessionToken
from .security import SecurityEvent
from .customers import Customer
from .catalog import DeviceType, Brand, DeviceModel, ServiceType, PredefinedProblem
from .devices import Device, DeviceStatusHistory, DeviceFeedback
from .inventory import InventoryItem
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderItem
from .sales import Sale, SaleItem
from .appointments import Appointment
from .finance import ExpenseCategory, Expense, Budget, LoanInvoice, LoanInvoicePayment
from .notifications import NotificationType, Notification, NotificationPreference
from .sms import (
    SmsTemplate,
    SmsCampaign,
    SmsCampaignRecipient,
    RecipientGroup,
    RecipientGroupMember,
    SmsQueue,
)
from .settings import AppSetting, BusinessProfile

__all__ = [
    'Location',
    'User', 'SessionToken', 'SecurityEvent',
    'Customer',
    'DeviceType', 'Brand', 'DeviceModel', 'ServiceType', 'PredefinedProblem',
    'Device', 'DeviceStatusHistory', 'DeviceFeedback',
    'InventoryItem',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem',
    'Sale', 'SaleItem',
    'Appointment',
    'ExpenseCategory', 'Expense', 'Budget', 'LoanInvoice', 'LoanInvoicePayment',
    'NotificationType', 'Notification', 'NotificationPreference',
    'SmsTemplate', 'SmsCampaign', 'SmsCampaignRecipient',
    'RecipientGroup', 'RecipientGroupMember', 'SmsQueue',
    'AppSetting', 'BusinessProfile',
]
