"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_TITLE_LENGTH = 200
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Roles
ADMIN_LIKE_ROLES = ("admin", "offline")  # offline = front-desk receptionist booking on behalf of patients
EMPLOYEE_ROLE = "employee"
VALID_ROLES = ("user", "admin", "employee", "offline")

# Appointments
APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled")
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30
CONFLICT_SEARCH_WINDOW_MINUTES = 60  # ±1 hour around the candidate start
DEFAULT_SCHEDULE_WINDOW_DAYS = 7  # Employee schedule view defaults to one week

# Availability grid
DEFAULT_SLOT_DURATION_MINUTES = 30

# Bed tasks
BED_TASK_TERMINAL_STATUSES = ("completed", "cancelled")
TASK_SCHEDULER_MAX_INSTANCES = 1  # Never run two ticks of the same task concurrently
