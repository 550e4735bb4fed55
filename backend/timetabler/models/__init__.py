from timetabler.models.activity_log import ActivityLog  # noqa: F401
from timetabler.models.classroom import Classroom, ClassroomStatus, ClassroomType  # noqa: F401
from timetabler.models.enrollment import Enrollment, EnrollmentStatus  # noqa: F401
from timetabler.models.faculty import Faculty, FacultySubject  # noqa: F401
from timetabler.models.subject import Subject  # noqa: F401
from timetabler.models.time_slot import TimeSlot  # noqa: F401
from timetabler.models.timetable_entry import TimetableEntry, active_entries  # noqa: F401
