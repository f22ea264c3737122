# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata (store distant)
# et LocalBase.metadata (appareil) avant que SQLAlchemy tente de résoudre les clés étrangères.

from sems_scanner.models.student import Level, Section, Student  # noqa: F401 : doit précéder attendance_log
from sems_scanner.models.event import Event  # noqa: F401
from sems_scanner.models.event_session import EventSession  # noqa: F401
from sems_scanner.models.attendance_log import AttendanceLog  # noqa: F401

from sems_scanner.models.scanner_event import ScannerEvent  # noqa: F401
from sems_scanner.models.allowed_student import AllowedStudent  # noqa: F401
from sems_scanner.models.scan_record import ScanRecord  # noqa: F401
