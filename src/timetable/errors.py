"""Error hierarchy for the timetable pipeline.

Failures split into transient ones (network, upstream outages, a dropped
week) and permanent ones (rejected credentials, contract violations, data the
upstream service will keep sending the same way). Callers decide how to
degrade from the class alone:

    try:
        schedule = await service.aggregate_schedule_for(ucode)
    except NoCurrentTerm:
        schedule = None
"""


class TimetableError(Exception):
    """Base exception for all timetable pipeline errors."""

    pass


class TransientError(TimetableError):
    """Temporary failure that may succeed on a later request.

    Examples: connection reset, read timeout, 502 from the campus gateway.
    """

    pass


class UpstreamUnavailable(TransientError):
    """The campus API could not be reached or answered with a 5xx."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class PartialAggregationLoss(TransientError):
    """One week of a term could not be fetched during fan-out.

    Never propagated out of the orchestrator: the week is logged and left out
    of the result map.
    """

    def __init__(self, week_number: int, cause: BaseException) -> None:
        super().__init__(f"Week {week_number} dropped: {cause}")
        self.week_number = week_number
        self.cause = cause


class PermanentError(TimetableError):
    """Failure that won't succeed by asking again with the same input."""

    pass


class AuthFailure(PermanentError):
    """Upstream rejected the credentials (HTTP 401).

    Triggers the escalated credential attempt once; the escalated attempt's
    own AuthFailure is final.
    """

    def __init__(self, message: str, *, status: int = 401, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamRejected(PermanentError):
    """Upstream answered with a non-auth client error or an unreadable payload."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class NoCurrentTerm(PermanentError):
    """No academic term is flagged as current.

    Recoverable: metadata callers substitute an empty week list.
    """

    pass


class EmptyInput(PermanentError):
    """Aggregation was asked to run over an empty week list."""

    pass


class MissingCredentials(PermanentError):
    """Aggregation was called without a token or a student id."""

    pass


class MalformedRecord(PermanentError):
    """A course record string does not have the expected 9 fields.

    Only raised by the strict parser; the tolerant decoder turns it into a
    free slot.
    """

    pass
