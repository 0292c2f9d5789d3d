class MediaStampError(Exception):
    """Base exception for all mediastamp errors."""
    pass


class UnrecognizedContainerType(MediaStampError):
    """The file extension does not map to a supported container."""

    def __init__(self, message: str = "unknown file type"):
        super().__init__(message)


class ContainerParseFailure(MediaStampError):
    """The container could not be opened or its structure is malformed."""
    pass


class DateNotFound(MediaStampError):
    """No usable creation date in the container."""

    def __init__(self, message: str = "unable to determine creation date"):
        super().__init__(message)


class OffsetOutOfRange(MediaStampError):
    """The run-wide timezone offset does not fit in a signed 32-bit second count."""

    def __init__(self, message: str = "offset too big"):
        super().__init__(message)


class RenameFailure(MediaStampError):
    def __init__(self, new_path, message):
        self.new_path = new_path
        self.message = message
        super().__init__(f"unable to rename to {new_path}: {message}")
