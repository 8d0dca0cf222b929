"""ResearchViewer: research document viewer with streamed chat and export."""

__version__ = "0.1.0"
