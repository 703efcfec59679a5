class CrispError(Exception):
    """Base class for every error raised by the interview core."""


class PreconditionError(CrispError):
    """A transition was requested in a state that does not allow it.

    These are integration bugs in the calling layer, never user errors.
    """


class SessionNotStartedError(PreconditionError):
    pass


class SessionCompleteError(PreconditionError):
    pass


class EmptyQuestionListError(PreconditionError):
    pass


class InvalidQuestionIndexError(PreconditionError):
    def __init__(self, index: int, question_count: int):
        super().__init__(
            f"Question index {index} is outside 0..{question_count - 1}"
        )
        self.index = index
        self.question_count = question_count


class LastQuestionError(PreconditionError):
    """advance() was called on the last question; complete() is required."""


class EmptyAnswerError(CrispError):
    """A manual submission carried no text."""


class AdapterError(CrispError):
    """The AI adapter was unreachable or returned unusable data."""


class StorageError(CrispError):
    """Reading or writing the persisted session failed."""
