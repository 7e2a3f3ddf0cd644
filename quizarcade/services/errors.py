"""
Domain errors raised by the arcade engine.

Every error carries a ``kind`` used by the HTTP layer to pick a status code:
``validation`` (400), ``conflict`` (409) or ``not_found`` (404).
"""


class ArcadeError(Exception):
    kind = "validation"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ----- input validation -----

class EmptySelection(ArcadeError):
    def __init__(self, message: str = "No questions available for selected criteria"):
        super().__init__(message)


class InvalidChoice(ArcadeError):
    def __init__(self, label: str, valid: list):
        super().__init__(f"Invalid choice {label!r}; expected one of {', '.join(valid)}")
        self.label = label
        self.valid = valid


class InvalidTimeSpent(ArcadeError):
    def __init__(self, seconds):
        super().__init__(f"Time spent must be a whole number of seconds >= 0, got {seconds!r}")
        self.seconds = seconds


class InvalidQuestion(ArcadeError):
    pass


# ----- state conflicts -----

class AlreadyAnswered(ArcadeError):
    kind = "conflict"

    def __init__(self, session_id: int, question_id: int):
        super().__init__(f"Question {question_id} already answered in session {session_id}")
        self.session_id = session_id
        self.question_id = question_id


class SessionNotActive(ArcadeError):
    kind = "conflict"

    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} is not active")
        self.session_id = session_id


# ----- not found -----

class SessionNotFound(ArcadeError):
    kind = "not_found"

    def __init__(self, session_id):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class QuestionNotInPool(ArcadeError):
    kind = "not_found"

    def __init__(self, session_id: int, question_id: int):
        super().__init__(f"Question {question_id} is not part of session {session_id}")
        self.session_id = session_id
        self.question_id = question_id
