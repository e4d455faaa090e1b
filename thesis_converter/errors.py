"""Error taxonomy for the conversion pipeline.

Adapters translate library exceptions into these types so the task retry
loop and its log lines can name what went wrong.
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every failure a conversion attempt can raise."""


class StructureNotFound(ConversionError):
    """The extracted text has no document-start anchor."""


class ExtractionFailure(ConversionError):
    """The PDF could not be turned into text."""


class IOFailure(ConversionError):
    """Reading from or writing to object storage failed."""


class PersistenceFailure(ConversionError):
    """The metadata store rejected a read or an update."""
