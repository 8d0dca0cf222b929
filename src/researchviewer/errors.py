"""Error taxonomy.

Input validation problems (empty questions, blank follow-up context) are not errors: callers
treat them as silent no-ops. Everything below is caught at the component boundary that owns
the failing operation and turned into a user-visible message.
"""

from __future__ import annotations


class ViewerError(RuntimeError):
    """Base class for viewer errors."""


class TransportError(ViewerError):
    """A submission, streaming or research API call failed."""


class RenderError(ViewerError):
    """The markdown transform raised while rendering a document."""


class ResourceUnavailableError(ViewerError):
    """A library required for rendering or export is not installed."""


class RendererUnavailableError(ResourceUnavailableError):
    pass


class ExportUnavailableError(ResourceUnavailableError):
    pass


class ExportError(ViewerError):
    """Pagination or file output failed."""
