class HabitError(Exception):
    status_code = 500
    message = "Something went wrong"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotAuthenticated(HabitError):
    status_code = 401
    message = "Not authenticated"


class ValidationFailure(HabitError):
    status_code = 400
    message = "Invalid input"


class HabitNotFound(HabitError):
    status_code = 404
    message = "Habit not found"


class PersistenceFailure(HabitError):
    status_code = 500
    message = "Failed to save changes"
