from .user import User, UserRole, ROLE_RANK
from .project import Project, ProjectType, ProjectStatus
from .ticket import Ticket, TicketPriority, TicketStatus, TicketCategory
from .comment import Comment
from .audit import AuditRecord, AuditAction
from .sequence import SequenceCounter

__all__ = [
    "User", "UserRole", "ROLE_RANK",
    "Project", "ProjectType", "ProjectStatus",
    "Ticket", "TicketPriority", "TicketStatus", "TicketCategory",
    "Comment",
    "AuditRecord", "AuditAction",
    "SequenceCounter",
]
