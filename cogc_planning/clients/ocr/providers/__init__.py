"""OCR provider implementations."""
