"""Error taxonomy shared by the storage adapters and the format converter.

Storage adapters translate driver and filesystem failures into these types so
callers never have to catch asyncpg, SQLAlchemy or OSError directly.
"""


class PromptStoreError(Exception):
    """Root of every error raised by the prompt core."""
    pass


# ── Storage ──────────────────────────────────────────────────────


class StorageError(PromptStoreError):
    """A storage backend failed to complete an operation."""
    pass


class NotConnectedError(StorageError):
    """Raised when an adapter is used before connect() or after disconnect()."""

    def __init__(self, backend: str):
        super().__init__(f"{backend} storage not connected")
        self.backend = backend


class NotFoundError(StorageError):
    """Raised when an id-based lookup misses."""
    pass


class PromptNotFoundError(NotFoundError):
    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class BackupNotFoundError(NotFoundError):
    def __init__(self, backup_id: str):
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class InvalidPromptIdError(StorageError):
    """Raised when a prompt id cannot be stored by the backend (e.g. a path-like id)."""

    def __init__(self, prompt_id: str):
        super().__init__(f"Invalid prompt id: {prompt_id!r}")
        self.prompt_id = prompt_id


class StorageUnavailableError(StorageError):
    """Raised when the storage medium cannot be reached."""
    pass


class ConflictError(StorageError):
    """Raised when a write violates a uniqueness constraint."""
    pass


# ── Conversion ───────────────────────────────────────────────────


class ConversionError(PromptStoreError):
    """Base for format conversion failures."""
    pass


class InvalidFormatError(ConversionError):
    """Input does not match the expected serialized shape."""
    pass


class UnsupportedFormatError(ConversionError):
    """Conversion requested for an unrecognized format tag."""

    def __init__(self, fmt):
        super().__init__(f"Unsupported format: {fmt}")
        self.format = fmt
