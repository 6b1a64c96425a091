"""Server-side chat pipeline pieces that sit in front of the provider adapter."""

from .formatter import HistoryEntry, MultimodalFormatter, sniff_image_mime, to_data_uri

__all__ = ["HistoryEntry", "MultimodalFormatter", "sniff_image_mime", "to_data_uri"]
