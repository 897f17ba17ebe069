"""Error types for the similar-links pipeline."""


class SimilarLinksError(Exception):
    """Base error for the similar-links pipeline."""

    pass


class EmbeddingFetchError(SimilarLinksError):
    """Embedding could not be obtained for one document."""

    def __init__(self, doc_id: str, reason: str) -> None:
        super().__init__(f"Cannot embed {doc_id}: {reason}")
        self.doc_id = doc_id
        self.reason = reason


class DimensionMismatchError(SimilarLinksError):
    """Vector length differs from the rest of the store."""

    def __init__(self, expected: int, got: int, doc_id: str) -> None:
        super().__init__(f"Embedding for {doc_id} has dimension {got}, expected {expected}")
        self.expected = expected
        self.got = got
        self.doc_id = doc_id


class RenderError(SimilarLinksError):
    """A single output artifact could not be rendered."""

    def __init__(self, doc_id: str, reason: str) -> None:
        super().__init__(f"Cannot render similar links for {doc_id}: {reason}")
        self.doc_id = doc_id
        self.reason = reason


class StoreWriteError(SimilarLinksError):
    """The embedding store could not be committed. Aborts the run."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Cannot write embedding store {location}: {reason}")
        self.location = location
        self.reason = reason


class ArtifactWriteError(SimilarLinksError):
    """An output artifact could not be written. Aborts the run."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
        self.reason = reason


class StoreReadError(SimilarLinksError):
    """The embedding store exists but cannot be read or parsed."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Cannot read embedding store {location}: {reason}")
        self.location = location
        self.reason = reason


class CorpusLoadError(SimilarLinksError):
    """A corpus or backlinks file cannot be read or is not a mapping."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load {path}: {reason}")
        self.path = path
        self.reason = reason
