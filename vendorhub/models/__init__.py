from vendorhub.models.user import User
from vendorhub.models.submission import Submission
from vendorhub.models.document import SubmissionDocument, DocumentFile, DocumentRemark
from vendorhub.models.notification import Notification
from vendorhub.models.report import Report
from vendorhub.models.activity import ActivityLog

__all__ = [
    "User", "Submission", "SubmissionDocument", "DocumentFile", "DocumentRemark",
    "Notification", "Report", "ActivityLog",
]
