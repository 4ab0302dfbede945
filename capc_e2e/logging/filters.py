"""Logging filters routing records to stdout or stderr."""

import logging


class StreamRoutingFilter(logging.Filter):
    """Pass records destined for one output stream.

    Records carrying an explicit ``stream`` extra go to that stream.
    Otherwise warnings and above go to stderr and everything else to stdout.

    Parameters
    ----------
    stream : str
        Either "stdout" or "stderr"
    """

    def __init__(self, stream: str) -> None:
        super().__init__()
        if stream not in ("stdout", "stderr"):
            raise ValueError(f"Unknown stream: {stream}")
        self.stream = stream

    def filter(self, record: logging.LogRecord) -> bool:
        explicit = getattr(record, "stream", None)
        if explicit in ("stdout", "stderr"):
            return explicit == self.stream

        target = "stderr" if record.levelno >= logging.WARNING else "stdout"
        return target == self.stream
