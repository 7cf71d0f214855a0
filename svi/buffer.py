"""
Buffer module for the svi text editor.

Defines the Line class (a growable single-byte string) and the LineBuffer
class, a sparse array of optional lines indexed by row. A row that was never
typed into is absent (None), which is different from a row whose characters
were all deleted; both render and serialize as an empty line.

The LineBuffer also knows how to serialize itself to a file using batched
vectored writes.
"""
import os

# how many rows to initially allocate for the buffer, cant be 0
INITIAL_BUFFER_ROWS = 32
# how many rows to add to the buffer's size when it's too small, cant be 0
BUF_SIZE_INCREMENT = 16
# how many columns to initially allocate for each row, cant be 0 or 1
INITIAL_ROW_SIZE = 128
# how many columns to add to a row's size when it's too small, cant be 0
ROW_SIZE_INCREMENT = 64
# how many segments to gather before each writev() call
IOV_SIZE = 32
# mode for newly created files; will be modified by the process's umask
NEW_FILE_MODE = 0o666
# fallback for the kernel limit on segments per writev() call
IOV_MAX_FALLBACK = 1024

NEWLINE = b"\n"

def max_iov_size() -> int:
    """The most segments a single writev() call accepts on this system."""
    try:
        limit = os.sysconf("SC_IOV_MAX")
    except (AttributeError, ValueError, OSError):
        return IOV_MAX_FALLBACK
    return limit if limit > 0 else IOV_MAX_FALLBACK

def round_up(value: int, multiple: int) -> int:
    """Round value up to the nearest multiple of multiple."""
    return ((value + multiple - 1) // multiple) * multiple

class Line:
    """
    A growable byte string. The backing storage always holds `len` bytes of
    text followed by a NUL terminator, so `len < capacity` holds at all times.
    """
    def __init__(self, size: int = INITIAL_ROW_SIZE, increment: int = ROW_SIZE_INCREMENT):
        if size < 2 or increment < 1:
            raise ValueError("line size must be >= 2 and increment >= 1")
        self._data = bytearray(size)
        self.increment = increment
        self.len = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return self.len

    def __repr__(self):
        return f"Line({self.value()!r}, capacity={self.capacity})"

    def value(self) -> bytes:
        """Return the text of the line (without the terminator)."""
        return bytes(self._data[:self.len])

    def clear(self):
        """Empty the line, keeping its storage."""
        self.len = 0
        self._data[0] = 0

    def insert(self, ch: int, index: int):
        """
        Insert the byte ch at index. An index past the end appends. If the
        storage can't hold the extra character plus the terminator, it grows
        by `increment` bytes.
        """
        if self.len + 1 >= self.capacity:
            self._data.extend(bytes(self.increment))

        if index > self.len:
            index = self.len

        if index < self.len:
            # move the tail (terminator included) one place forwards
            self._data[index + 1:self.len + 2] = self._data[index:self.len + 1]
            self._data[index] = ch
        else:
            self._data[index] = ch
            self._data[index + 1] = 0
        self.len += 1

    def remove(self, index: int):
        """Remove the byte at index; an index past the end removes the last one."""
        if self.len == 0:
            return

        if index > self.len - 1:
            index = self.len - 1

        if index < self.len - 1:
            # shift the tail (terminator included) one place backwards
            self._data[index:self.len] = self._data[index + 1:self.len + 1]
        else:
            self._data[index] = 0
        self.len -= 1

class LineBuffer:
    """Represents the editing buffer: a growable array of optional lines."""
    def __init__(self, size: int = INITIAL_BUFFER_ROWS,
                 increment: int = BUF_SIZE_INCREMENT,
                 row_size: int = INITIAL_ROW_SIZE,
                 row_increment: int = ROW_SIZE_INCREMENT):
        if size < 1 or increment < 1:
            raise ValueError("buffer size and increment must be >= 1")
        self.rows = [None] * size
        self.increment = increment
        self.row_size = row_size
        self.row_increment = row_increment
        # 1 + index of the last present row, or 0 when there's none
        self.len = 0

    @property
    def capacity(self) -> int:
        return len(self.rows)

    def __len__(self) -> int:
        return self.len

    def line(self, row: int):
        """Return the Line at row, or None if it is absent or out of range."""
        if 0 <= row < self.capacity:
            return self.rows[row]
        return None

    def line_length(self, row: int) -> int:
        """Length of the line at row, 0 for absent rows."""
        line = self.line(row)
        return line.len if line is not None else 0

    def row_bytes(self, row: int) -> bytes:
        """Text of the line at row, b"" for absent rows."""
        line = self.line(row)
        return line.value() if line is not None else b""

    def ensure_capacity(self, row: int):
        """Grow the buffer so that row is a valid index."""
        if row >= self.capacity:
            self.resize(round_up(row + 1, self.increment))

    def resize(self, size: int):
        """Resize the buffer to size rows, growing with absent rows or shrinking."""
        if size > self.capacity:
            self.rows.extend([None] * (size - self.capacity))
        elif size < self.capacity:
            self.shrink(size)

    def shrink(self, new_size: int):
        """
        Drop every row at index >= new_size and recompute `len` from the last
        row that is still present.
        """
        if new_size < 0 or new_size > self.capacity:
            raise ValueError(f"can't shrink a buffer of {self.capacity} rows to {new_size}")
        del self.rows[new_size:]
        if self.len > new_size:
            length = new_size
            while length and self.rows[length - 1] is None:
                length -= 1
            self.len = length

    def insert_char(self, row: int, col: int, ch: int):
        """Insert a character into a row, creating the row if it doesn't exist."""
        self.ensure_capacity(row)
        line = self.rows[row]
        if line is None:
            line = Line(self.row_size, self.row_increment)
            line.insert(ch, 0)
            self.rows[row] = line
        else:
            line.insert(ch, col)
        if row >= self.len:
            self.len = row + 1

    def remove_char(self, row: int, col: int):
        """Remove a character from a row; absent rows are left alone."""
        line = self.line(row)
        if line is not None:
            line.remove(col)

    def write_to_file(self, filename: str, overwrite: bool, mode: int = NEW_FILE_MODE,
                      iov_size: int = IOV_SIZE) -> int:
        """
        Write rows 0..len-1 to filename, one newline-terminated line per row.
        With overwrite the file is created or truncated, otherwise it must not
        exist yet (FileExistsError). Returns the number of bytes written.

        The write is not transactional: a failure half way leaves the file
        truncated.
        """
        flags = os.O_WRONLY | os.O_CREAT
        flags |= os.O_TRUNC if overwrite else os.O_EXCL
        fd = os.open(filename, flags, mode)
        try:
            batch = _WriteBatch(fd, iov_size)
            for row in range(self.len):
                line = self.rows[row]
                if line is not None and line.len:
                    batch.add(line.value())
                batch.add(NEWLINE)
            batch.flush()
        finally:
            os.close(fd)
        return batch.written

class _WriteBatch:
    """Gathers byte segments and writes them out with os.writev()."""
    def __init__(self, fd: int, size: int):
        if size < 1:
            raise ValueError("iov size must be >= 1")
        self.fd = fd
        self.size = min(size, max_iov_size())
        self.segments = []
        self.written = 0

    def add(self, segment: bytes):
        if len(self.segments) >= self.size:
            self.flush()
        self.segments.append(segment)

    def flush(self):
        segments = self.segments
        self.segments = []
        while segments:
            count = os.writev(self.fd, segments)
            self.written += count
            # drop what was written and resume a short write
            while segments and count >= len(segments[0]):
                count -= len(segments[0])
                segments.pop(0)
            if segments and count:
                segments[0] = segments[0][count:]
