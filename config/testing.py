SECRET_KEY = "test-secret"

DB_CONFIG = {}

# Test chạy hoàn toàn trong bộ nhớ
STORAGE_BACKEND = "memory"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False

WORK_HOUR_DEFAULTS = {}

AUTO_CHECKOUT_SCHEDULER = False
AUTO_CHECKOUT_INTERVAL_MINUTES = 5

# 0 = gửi thông báo ngay trong request (dễ kiểm tra)
NOTIFICATION_WORKERS = 0

REGULARIZATION_LEVELS = None
REGULARIZATION_APPROVALS_REQUIRED = 1

MAX_CAS_RETRIES = 3
