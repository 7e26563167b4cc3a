"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_CAS_RETRIES = 3
DEFAULT_AUTO_CHECKOUT_INTERVAL_MINUTES = 5
DEFAULT_NOTIFICATION_WORKERS = 2

REASON_MAX_LENGTH = 500
HALF_DAY_HOURS = 4

REGULARIZATION_ID_PREFIX = "REG"
PERMISSION_ID_PREFIX = "PR"

REGULARIZATION_TYPE_DESCRIPTIONS = {
    "Missed Check-In": "Quên chấm công vào ca",
    "Missed Check-Out": "Quên chấm công tan ca",
    "Missed Both": "Quên chấm công cả vào và ra",
    "Late Arrival": "Đi muộn có lý do chính đáng",
    "Early Departure": "Về sớm có lý do chính đáng",
    "Absent to Present": "Chuyển vắng mặt thành có mặt",
    "Absent to Half Day": "Chuyển vắng mặt thành nửa ngày",
    "System Error": "Lỗi hệ thống chấm công",
    "Work From Home": "Làm việc tại nhà",
    "Field Work": "Công tác bên ngoài / tại khách hàng",
    "Medical Emergency": "Cấp cứu y tế",
    "Transport Issue": "Sự cố giao thông",
    "Other": "Lý do khác",
}
