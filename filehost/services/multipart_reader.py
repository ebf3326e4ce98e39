"""Incremental multipart/form-data reading.

The request body is pushed into python-multipart's parser one slice at a time.
Parser callbacks are queued as events and drained after every slice, so no
more than one slice of the body is held in memory and nothing is spooled to
temporary storage. Parts before the first one carrying a filename are skipped
without buffering their data.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator
from enum import Enum

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from filehost.errors import NoFileUploaded, StorageError
from filehost.services.upload import CHUNK_SIZE, IncomingFile

logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = b"multipart/form-data"
MAX_PART_HEADER_BYTES = 16 * 1024


class PartEvent(Enum):
    """Parser callback kinds, in the order the parser emits them."""

    PART_BEGIN = "part_begin"
    HEADER_FIELD = "header_field"
    HEADER_VALUE = "header_value"
    HEADER_END = "header_end"
    HEADERS_FINISHED = "headers_finished"
    PART_DATA = "part_data"
    PART_END = "part_end"
    END = "end"


class MultipartFileReader:
    """Exposes the first file part of a multipart body as a chunk stream.

    ``body`` is the raw request body (``Request.stream()``). Data is fed to
    the parser in slices of at most ``chunk_size`` bytes, so every chunk the
    caller sees is bounded by it regardless of how the server framed the body.
    """

    def __init__(
        self,
        content_type: str | None,
        body: AsyncIterable[bytes],
        chunk_size: int = CHUNK_SIZE,
        charset: str = "utf-8",
    ):
        self.content_type = content_type
        self.body = body
        self.chunk_size = chunk_size
        self.charset = charset
        self.bytes_received = 0
        self._pending: list[tuple[PartEvent, bytes]] = []
        self._events: AsyncIterator[tuple[PartEvent, bytes]] | None = None
        self._chunks: AsyncIterator[bytes] | None = None

    def _callbacks(self) -> dict:
        def data_callback(kind: PartEvent):
            def callback(data: bytes, start: int, end: int) -> None:
                self._pending.append((kind, bytes(data[start:end])))

            return callback

        def notify_callback(kind: PartEvent):
            def callback() -> None:
                self._pending.append((kind, b""))

            return callback

        return {
            "on_part_begin": notify_callback(PartEvent.PART_BEGIN),
            "on_header_field": data_callback(PartEvent.HEADER_FIELD),
            "on_header_value": data_callback(PartEvent.HEADER_VALUE),
            "on_header_end": notify_callback(PartEvent.HEADER_END),
            "on_headers_finished": notify_callback(PartEvent.HEADERS_FINISHED),
            "on_part_data": data_callback(PartEvent.PART_DATA),
            "on_part_end": notify_callback(PartEvent.PART_END),
            "on_end": notify_callback(PartEvent.END),
        }

    async def _iter_events(self, parser: MultipartParser) -> AsyncIterator[tuple[PartEvent, bytes]]:
        try:
            async for message in self.body:
                for start in range(0, len(message), self.chunk_size):
                    piece = message[start : start + self.chunk_size]
                    self.bytes_received += len(piece)
                    parser.write(piece)
                    events, self._pending = self._pending, []
                    for event in events:
                        yield event
            parser.finalize()
        except MultipartParseError as e:
            raise StorageError(f"Multipart error: {e}") from e
        except ClientDisconnect as e:
            raise StorageError("Multipart error: client disconnected") from e

        events, self._pending = self._pending, []
        for event in events:
            yield event

    async def read_file(self) -> IncomingFile:
        """Advance the body to the first part that carries a filename.

        Raises:
            NoFileUploaded: the body is not multipart or has no file part.
            StorageError: the multipart stream is malformed.
        """
        media_type, params = parse_options_header(self.content_type)
        if media_type != MULTIPART_FORM_DATA:
            raise NoFileUploaded()
        boundary = params.get(b"boundary")
        if not boundary:
            raise StorageError("Multipart error: missing boundary")

        self._events = self._iter_events(MultipartParser(boundary, self._callbacks()))

        headers: dict[bytes, bytes] = {}
        field = value = b""
        header_bytes = 0
        async for kind, data in self._events:
            if kind is PartEvent.PART_BEGIN:
                headers = {}
                header_bytes = 0
            elif kind is PartEvent.HEADER_FIELD or kind is PartEvent.HEADER_VALUE:
                if kind is PartEvent.HEADER_FIELD:
                    field += data
                else:
                    value += data
                if header_bytes + len(field) + len(value) > MAX_PART_HEADER_BYTES:
                    raise StorageError("Multipart error: part headers too large")
            elif kind is PartEvent.HEADER_END:
                headers[field.lower()] = value
                header_bytes += len(field) + len(value)
                field = value = b""
            elif kind is PartEvent.HEADERS_FINISHED:
                _, options = parse_options_header(headers.get(b"content-disposition", b""))
                filename = options.get(b"filename")
                if filename:
                    content_type = headers.get(b"content-type", b"").decode("latin-1").strip()
                    self._chunks = self._part_chunks(self._events)
                    return IncomingFile(
                        filename=filename.decode(self.charset, errors="replace"),
                        content_type=content_type or None,
                        chunks=self._chunks,
                    )

        raise NoFileUploaded()

    async def _part_chunks(self, events: AsyncIterator[tuple[PartEvent, bytes]]) -> AsyncIterator[bytes]:
        async for kind, data in events:
            if kind is PartEvent.PART_DATA:
                if data:
                    yield data
            elif kind is PartEvent.PART_END:
                return
        raise StorageError("Multipart error: body ended inside the file part")

    async def aclose(self) -> None:
        """Stop reading the body; whatever the client has not sent is left unread."""
        for stream in (self._chunks, self._events):
            if stream is not None:
                await stream.aclose()
        logger.debug(f"Multipart reader closed after {self.bytes_received} bytes")
