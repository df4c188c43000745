"""
Befunge93 I/O Port

The engine talks to the outside world only through this interface:

  read_integer() -> int | None    `&`
  read_char()    -> int | None    `~`
  write_text(s)                   `.`  (engine appends the trailing space)
  write_char(code)                `,`

None means end of input; what happens next is the engine's input policy.

Two bindings ship here:
  BufferedPort  in-memory input queue + output buffer, for tests and the
                interactive debugger (feed() input, read .output back)
  StreamPort    binary streams, for the CLI (stdin.buffer / stdout.buffer)

Input is handled as bytes. Integer input skips anything that is not a
digit (or a '-' directly in front of one), takes the run of digits, and
leaves the byte that ended the number for the next read.
"""

import logging
from collections import deque
from typing import BinaryIO, Optional, Union

log = logging.getLogger(__name__)

_MINUS = ord('-')


def _is_digit(byte: Optional[int]) -> bool:
    return byte is not None and 0x30 <= byte <= 0x39


class IOPort:
    """Base port. Subclasses supply the byte source and the sink."""

    def __init__(self):
        self._pushback: Optional[int] = None

    # --- Byte source (subclass) ---

    def _next_byte(self) -> Optional[int]:
        raise NotImplementedError

    # --- Sink (subclass) ---

    def _emit(self, data: bytes):
        raise NotImplementedError

    # --- Reading ---

    def _read_byte(self) -> Optional[int]:
        if self._pushback is not None:
            byte, self._pushback = self._pushback, None
            return byte
        return self._next_byte()

    def _unread_byte(self, byte: Optional[int]):
        if byte is not None:
            self._pushback = byte

    def read_char(self) -> Optional[int]:
        """Next input byte, or None at end of input."""
        return self._read_byte()

    def read_integer(self) -> Optional[int]:
        """Next decimal integer in the input, or None if none is left."""
        sign = 1
        byte = self._read_byte()
        while byte is not None:
            if _is_digit(byte):
                break
            if byte == _MINUS:
                following = self._read_byte()
                if _is_digit(following):
                    sign = -1
                    byte = following
                    break
                byte = following
                continue
            byte = self._read_byte()
        if byte is None:
            return None

        value = 0
        while _is_digit(byte):
            value = value * 10 + (byte - 0x30)
            byte = self._read_byte()
        self._unread_byte(byte)
        return sign * value

    # --- Writing ---

    def write_text(self, text: str):
        self._emit(text.encode('latin-1', errors='replace'))

    def write_char(self, code: int):
        self._emit(bytes([code & 0xFF]))


class BufferedPort(IOPort):
    """In-memory port.

    Input is queued with feed(); everything written lands in `output`.
    """

    def __init__(self, input_data: Union[bytes, str] = b''):
        super().__init__()
        self._rx_queue: deque = deque()
        self.tx_buffer: bytearray = bytearray()
        self.feed(input_data)

    def feed(self, data: Union[bytes, str]):
        """Append bytes to the input queue (str is encoded latin-1)."""
        if isinstance(data, str):
            data = data.encode('latin-1', errors='replace')
        self._rx_queue.extend(data)

    @property
    def pending_input(self) -> int:
        """Bytes queued but not yet read."""
        return len(self._rx_queue) + (self._pushback is not None)

    def _next_byte(self) -> Optional[int]:
        if self._rx_queue:
            return self._rx_queue.popleft()
        return None

    def _emit(self, data: bytes):
        self.tx_buffer.extend(data)

    @property
    def output(self) -> bytes:
        """All bytes written since the last reset."""
        return bytes(self.tx_buffer)

    @property
    def output_text(self) -> str:
        return self.tx_buffer.decode('latin-1')

    def reset(self):
        """Drop queued input and written output."""
        self._rx_queue.clear()
        self._pushback = None
        self.tx_buffer.clear()


class StreamPort(IOPort):
    """Port bound to binary streams, flushed after every write."""

    def __init__(self, stdin: Optional[BinaryIO], stdout: BinaryIO):
        super().__init__()
        self._stdin = stdin
        self._stdout = stdout
        self._eof = stdin is None

    def _next_byte(self) -> Optional[int]:
        if self._eof:
            return None
        chunk = self._stdin.read(1)
        if not chunk:
            log.debug("Input stream exhausted")
            self._eof = True
            return None
        return chunk[0]

    def _emit(self, data: bytes):
        self._stdout.write(data)
        self._stdout.flush()
