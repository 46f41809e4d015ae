import enum


class SearchFilters(enum.StrEnum):
    """Search Filters. Used in catalog search queries to filter results."""

    SONGS = "songs"
    VIDEOS = "videos"
