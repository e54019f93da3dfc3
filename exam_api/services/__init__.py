"""Service layer: content import, outlines, persistence and live sessions."""
