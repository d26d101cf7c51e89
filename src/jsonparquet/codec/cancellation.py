import threading

from jsonparquet.utils.exceptions import OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation flag, checked between row groups (write)
    and between rows (read).
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelledError()
