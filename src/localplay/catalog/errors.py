"""Catalog errors."""

EMPTY_CATALOG_GUIDANCE = (
    "No section subfolders with media files were found. Please select a folder "
    "containing section subfolders with media files."
)


class EmptyCatalogError(Exception):
    """Raised when ingestion finds no section containing media items."""

    def __init__(self, message: str = EMPTY_CATALOG_GUIDANCE) -> None:
        super().__init__(message)
