from .user import User
from .team import Company, Team, team_members
from .project import Project
from .task import Task, Subtask
from .comment import Comment
from .activity import ActivityRecord
from .invitation import Invitation
