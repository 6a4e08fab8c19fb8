"""RequestQueue: FIFO buffer between event intake and the queue processor.

The queue has exactly one producer (the event subscription) and one consumer
(the QueueProcessor). Both operations go through collections.deque, whose
append() and popleft() are atomic, so the producer is never blocked by a
dequeue in progress and no lock is needed.

.. code-block:: python

    >>> queue = RequestQueue()
    >>> for i in range(3):
    ...     queue.enqueue(OracleRequest("0xCaller", i, arrival_order=i))
    >>> [r.request_id for r in queue.dequeue_up_to(2)]
    [0, 1]
    >>> len(queue)
    1
"""

from __future__ import annotations

from collections import deque

from .OracleRequest import OracleRequest


class RequestQueue:
    """Unbounded FIFO queue of pending oracle requests.

    Requests are not deduplicated: the same request id delivered twice is
    two entries.
    """

    def __init__(self) -> None:
        self._items: deque[OracleRequest] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        """Check if no requests are pending."""
        return not self._items

    def enqueue(self, request: OracleRequest) -> None:
        """Append a request to the tail of the queue.

        :param request: Request to buffer.
        """
        self._items.append(request)

    def dequeue_up_to(self, n: int) -> list[OracleRequest]:
        """Remove and return up to n requests from the head, in arrival order.

        Requests appended while this runs land behind the ones taken and are
        left for the next call.

        :param n: Maximum number of requests to take.
        :returns: Between 0 and n requests; empty if the queue is empty.
        :raises ValueError: If n is negative.
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        # Only the consumer pops, so the length can only grow under us.
        count = min(n, len(self._items))
        return [self._items.popleft() for _ in range(count)]

    def peek_all(self) -> list[OracleRequest]:
        """Return a snapshot of pending requests without removing them."""
        return list(self._items)
