# teamspace/core/exceptions.py

class BaseAppException(Exception):
    """Базовый класс для всех кастомных исключений приложения."""
    def __init__(self, message: str = "App exception"):
        super().__init__(message)

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации."""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class ProjectValidationError(ValidationError):
    """Ошибка валидации проекта."""
    def __init__(self, message: str = "Project validation error"):
        super().__init__(message)

class TaskValidationError(ValidationError):
    """Ошибка валидации задачи или набора сабтасков."""
    def __init__(self, message: str = "Task validation error"):
        super().__init__(message)

class CommentValidationError(ValidationError):
    """Ошибка валидации комментария."""
    def __init__(self, message: str = "Comment validation error"):
        super().__init__(message)

class UserValidationError(ValidationError):
    """Ошибка валидации пользователя."""
    def __init__(self, message: str = "User validation error"):
        super().__init__(message)

class TeamValidationError(ValidationError):
    """Ошибка валидации команды или компании."""
    def __init__(self, message: str = "Team validation error"):
        super().__init__(message)

class InvitationValidationError(ValidationError):
    """Приглашение недействительно, просрочено или уже принято."""
    def __init__(self, message: str = "Invalid or expired invitation"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class ProjectNotFound(NotFoundError):
    def __init__(self, message: str = "Project not found"):
        super().__init__(message)

class TaskNotFound(NotFoundError):
    def __init__(self, message: str = "Task not found"):
        super().__init__(message)

class SubtaskNotFound(NotFoundError):
    def __init__(self, message: str = "Subtask not found"):
        super().__init__(message)

class CommentNotFound(NotFoundError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message)

class ActivityNotFound(NotFoundError):
    def __init__(self, message: str = "Activity not found"):
        super().__init__(message)

class UserNotFound(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)

class CompanyNotFound(NotFoundError):
    def __init__(self, message: str = "Company not found"):
        super().__init__(message)

class TeamNotFound(NotFoundError):
    def __init__(self, message: str = "Team not found"):
        super().__init__(message)

class InvitationNotFound(NotFoundError):
    def __init__(self, message: str = "Invitation not found"):
        super().__init__(message)

# ==== Авторизация ====

class AuthError(BaseAppException):
    """Ошибка аутентификации или авторизации."""
    def __init__(self, message: str = "Authentication or authorization error"):
        super().__init__(message)

class NotAuthenticatedError(AuthError):
    """Нет текущего пользователя (actor не определён)."""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)

class PermissionDeniedError(AuthError):
    """Пользователь определён, но не имеет прав на объект."""
    def __init__(self, message: str = "Not enough permissions"):
        super().__init__(message)
