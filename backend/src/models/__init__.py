# Package initialization
# Import all models to ensure relationships are properly established
from .clinic import Clinic
from .user import User
from .working_hours import WorkingHours
from .holiday import Holiday
from .maintenance_window import MaintenanceWindow
from .leave import Leave
from .appointment import Appointment
from .bed import Bed, bed_employees
from .bed_task import BedTask

__all__ = [
    "Clinic",
    "User",
    "WorkingHours",
    "Holiday",
    "MaintenanceWindow",
    "Leave",
    "Appointment",
    "Bed",
    "bed_employees",
    "BedTask",
]
