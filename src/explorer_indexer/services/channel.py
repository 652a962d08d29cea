import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator


@dataclass
class Message:
    topic: str
    payload: Any


class MessageChannel:
    """Queue of indexing notifications (newBlock, newTx), owned by whoever constructs it"""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)

    async def publish(self, topic: str, payload: Any) -> None:
        await self._queue.put(Message(topic, payload))

    async def receive(self) -> Message:
        message = await self._queue.get()
        self._queue.task_done()
        return message

    def pending(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[Message]:
        while True:
            yield await self.receive()
