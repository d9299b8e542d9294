"""
Table Queue — message queue semantics on a shared relational table.

Consumers poll the ``enqueue`` table and claim rows with a short
SELECT ... FOR UPDATE / DELETE transaction. Exactly one consumer gets each
row, the highest priority first and oldest first within a priority, and rows
with a future ``delayed_until`` stay hidden until it passes.

Delivery is at-most-once: the row is deleted when it is claimed, so a crash
between claim and processing loses the message. ``reject(message,
requeue=True)`` re-inserts it with ``redelivered = True``.

Quick start:
  from table_queue import QueueContext
  async with QueueContext.from_settings() as context:
      consumer = context.create_consumer(context.create_queue("emails"))
      message = await consumer.receive(timeout=5000)
"""
from table_queue.message import QueueDestination, QueueMessage
from table_queue.errors import QueueError, ConsistencyFault, InvalidMessageError
from table_queue.claim import ClaimEngine
from table_queue.requeue import RequeuePublisher
from table_queue.consumer import PollingConsumer
from table_queue.producer import QueueProducer
from table_queue.context import QueueContext

__all__ = [
    # Models
    "QueueDestination", "QueueMessage",
    # Errors
    "QueueError", "ConsistencyFault", "InvalidMessageError",
    # Claim / requeue
    "ClaimEngine", "RequeuePublisher",
    # Endpoints
    "PollingConsumer", "QueueProducer",
    # Store handle
    "QueueContext",
]
