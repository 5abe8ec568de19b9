"""Text preparation and index maintenance for todos and memories."""
