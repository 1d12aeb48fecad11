"""
Modelos SQLAlchemy — exportar todos para que Alembic los detecte.
"""

from saludia.models.user import AppRole, UserProfile
from saludia.models.case import Case, CaseStatus, InsurerResolutionState
from saludia.models.suggestion import Suggestion, SuggestionType
from saludia.models.resolution import Decision, Resolution
from saludia.models.notification import Notification, NotificationType
from saludia.models.patient_communication import PatientCommunication
from saludia.models.case_edit_snapshot import CaseEditSnapshot
from saludia.models.audit_log import AuditLog

__all__ = [
    "AppRole",
    "UserProfile",
    "Case",
    "CaseStatus",
    "InsurerResolutionState",
    "Suggestion",
    "SuggestionType",
    "Decision",
    "Resolution",
    "Notification",
    "NotificationType",
    "PatientCommunication",
    "CaseEditSnapshot",
    "AuditLog",
]
