"""File upload and storage for ShareHub.

Uploads arrive over HTTP, are stored on disk under a generated unique name
that keeps the original extension, and are tracked in DuckDB. Chat messages
only ever carry the resulting reference (URL + original filename), never
the bytes.

Supported file types:
- Images: jpg, jpeg, png, gif, webp, svg
- Documents: pdf
- Audio: mp3, wav, ogg, m4a, flac
- Any other file under the configured size limit (50MB by default)
"""
