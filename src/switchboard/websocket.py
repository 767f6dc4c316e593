import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Union

logger = logging.getLogger("switchboard")


async def _dispatch(callback: Union[Callable, None], *args):
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class AiohttpWebSocketTransport:
    """Opens client WebSocket connections with aiohttp's ``ws_connect``."""

    def __init__(self, session=None):
        self.session = session
        self._own_session = session is None

    async def connect(self, url: str, **kwargs):
        import aiohttp  # noqa: PLC0415

        if self.session is None:
            self.session = aiohttp.ClientSession()
        return await self.session.ws_connect(url, **kwargs)

    async def aclose(self):
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None


class WebSocketConnection:
    """Handle for an open connection: ``send``/``close`` plus a reader task.

    The reader pushes every frame through ``parse`` and hands the result to
    ``on_message``. ERROR frames, receive failures and exceptions raised by
    ``on_message`` go to ``on_error``. When the reader ends the socket is closed
    and ``on_close`` runs exactly once. There is no reconnect.
    """

    def __init__(
        self,
        ws,
        parse: Callable[[Any], Any],
        on_open=None,
        on_message=None,
        on_error=None,
        on_close=None,
    ):
        self.ws = ws
        self._parse = parse
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self._task: Union[asyncio.Task, None] = None

    async def start(self):
        await _dispatch(self.on_open)
        self._task = asyncio.create_task(self._read())
        return self

    async def _read(self):
        import aiohttp  # noqa: PLC0415

        try:
            async for msg in self.ws:
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    try:
                        await _dispatch(self.on_message, self._parse(msg.data))
                    except Exception as e:
                        logger.warning(f"websocket on_message failed: {e!r}")
                        await _dispatch(self.on_error, e)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    err = self.ws.exception() or msg.data
                    logger.warning(f"websocket error frame: {err!r}")
                    await _dispatch(self.on_error, err)
        except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as e:
            logger.warning(f"websocket receive failed: {e!r}")
            await _dispatch(self.on_error, e)
        finally:
            try:
                if not getattr(self.ws, "closed", False):
                    await self.ws.close()
            finally:
                await _dispatch(self.on_close)

    async def send(self, data: Any):
        if isinstance(data, (bytes, bytearray)):
            await self.ws.send_bytes(bytes(data))
        elif isinstance(data, str):
            await self.ws.send_str(data)
        else:
            await self.ws.send_str(json.dumps(data))

    async def close(self):
        await self.ws.close()
        await self.wait_closed()

    async def wait_closed(self):
        if self._task is not None:
            await self._task

    @property
    def closed(self) -> bool:
        return bool(getattr(self.ws, "closed", False)) or (
            self._task is not None and self._task.done()
        )
