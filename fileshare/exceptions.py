"""Custom exception classes for the file share server."""


class FileShareException(Exception):
    """
    Base exception class for all file share errors.
    """
    pass


class UnsupportedTypeError(FileShareException):
    """
    Raised when an upload declares a content type outside the allow-list.
    """

    def __init__(self, content_type: str, display_name: str = ""):
        self.content_type = content_type
        self.display_name = display_name
        super().__init__(
            f"File type not allowed: {content_type}"
            + (f" for file: {display_name}" if display_name else "")
            + ". Allowed types: images, PDFs, documents, videos, audio, archives"
        )


class NotFoundError(FileShareException):
    """
    Raised when a storage name does not refer to a stored file.
    """

    def __init__(self, storage_name: str):
        self.storage_name = storage_name
        super().__init__(f"File not found: {storage_name}")


class IOFailureError(FileShareException):
    """
    Raised when the underlying filesystem fails during read, write or delete.
    """
    pass


class PayloadTooLargeError(FileShareException):
    """
    Raised when an upload exceeds the configured size ceiling.
    """

    def __init__(self, limit_bytes: int, display_name: str = ""):
        self.limit_bytes = limit_bytes
        self.display_name = display_name
        super().__init__(
            f"File too large"
            + (f": {display_name}" if display_name else "")
            + f". Maximum allowed size is {limit_bytes} bytes"
        )


class TooManyFilesError(FileShareException):
    """
    Raised when one upload request carries more files than allowed.
    """

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"Too many files in one upload: {count} (maximum {limit})")
