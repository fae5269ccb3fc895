"""Error kinds and the Result envelope handed to the presentation layer."""


class ZandarError(Exception):
    """Base for every user-reportable failure."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.kind

    def to_dict(self):
        return {"kind": self.kind, "message": self.message}


class ValidationError(ZandarError):
    """Malformed user input, e.g. an empty required field."""


class StructuralError(ZandarError):
    """A backup document is missing part of its required shape."""


class MalformedDocumentError(StructuralError):
    """A backup document is not parseable JSON at all."""


class VersionMismatchError(ZandarError):
    """A backup document was written by an incompatible version."""

    def __init__(self, expected, found):
        super().__init__(f"Incompatible backup version. Expected {expected}, got {found}")
        self.expected = expected
        self.found = found

    def to_dict(self):
        d = super().to_dict()
        d.update(expected=self.expected, found=self.found)
        return d


class NotFoundError(ZandarError):
    """A referenced record does not exist (any more)."""

    def __init__(self, collection, record_id):
        super().__init__(f"{collection} record {record_id!r} not found")
        self.collection = collection
        self.record_id = record_id


class StorageError(ZandarError):
    """The underlying transaction failed or was aborted."""


class Result:
    """Either a success value or a tagged error. Never both."""

    __slots__ = ("ok", "value", "error")

    def __init__(self, ok, value=None, error=None):
        self.ok = ok
        self.value = value
        self.error = error

    @classmethod
    def success(cls, value=None):
        return cls(True, value=value)

    @classmethod
    def failure(cls, error: ZandarError):
        return cls(False, error=error)

    def to_dict(self):
        if not self.ok:
            return {"success": False, "error": self.error.to_dict()}
        out = {"success": True}
        if isinstance(self.value, dict):
            out.update(self.value)
        elif self.value is not None:
            out["result"] = self.value
        return out

    def __repr__(self):
        if self.ok:
            return f"Result.success({self.value!r})"
        return f"Result.failure({self.error!r})"
