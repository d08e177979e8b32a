class ReadingTrackerError(Exception):
    """Base class for errors raised by the reading engine"""


class PersistenceError(ReadingTrackerError):
    """A save, insert or fetch against the database failed"""


class ResourceLoadError(ReadingTrackerError):
    """The bundled achievement catalog could not be read or parsed"""


class BookNotFoundError(ReadingTrackerError):
    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"Book {book_id} not found")
