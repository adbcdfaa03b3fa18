"""
CLI Constants

Command names, help texts and messages of the ``anideck`` command line.
"""


class CLICommands:
    """Command names."""

    DISCOVER = "discover"
    SWIPE = "swipe"
    GENRES = "genres"
    LIBRARY = "library"
    LIST = "list"
    ADD = "add"
    REMOVE = "remove"
    PROGRESS = "progress"


class CLIDefaults:
    """Default values of CLI options."""

    VERSION = "0.1.0"
    LOG_LEVEL = "WARNING"
    MODE = "anime"
    EXIT_SUCCESS = 0
    EXIT_ERROR = 1


class CLIHelp:
    """Help texts."""

    APP_NAME = "anideck"
    APP_DESCRIPTION = "Swipe-style anime and manga discovery on top of the Jikan API."
    APP_STYLE = "rich"
    VERSION_TEXT = "AniDeck v{version}"

    MODE_HELP = "Catalog to browse: anime or manga"
    GENRE_HELP = "Genre id to filter on (repeatable)"
    PRODUCER_HELP = "Studio (anime) or magazine (manga) id to filter on (repeatable)"
    QUERY_HELP = "Free-text title query"
    ORDER_BY_HELP = "Sort field (e.g. popularity, score, start_date)"
    SORT_HELP = "Sort direction: asc or desc"
    COUNT_HELP = "Number of titles to draw"
    JSON_HELP = "Output results as JSON"
    CONFIG_HELP = "Path to a TOML configuration file"
    LOG_LEVEL_HELP = "Log level (DEBUG, INFO, WARNING, ERROR)"
    STATUS_HELP = "Library status: current, planned or completed"
    DISCOVER_HELP = "Draw a batch of never-seen titles."
    SWIPE_HELP = "Swipe through titles interactively; likes are saved as planned."
    GENRES_HELP = "List the genres of a catalog."
    LIBRARY_HELP = "Manage the local library."


class CLIMessages:
    """User-facing messages."""

    NOTHING_FOUND = "Nothing found right now. Try other filters or try again later."
    UPSTREAM_OFFLINE = "The catalog API cannot be reached at the moment."
    ADDED = "Added {title} ({mal_id}) as {status}."
    REMOVED = "Removed {mal_id} from the library."
    NOT_IN_LIBRARY = "{mal_id} is not in the library."
    NOT_FOUND = "No {mode} with id {mal_id} was found."
    PROGRESS_UPDATED = "{title}: {progress} ({status})."
    SWIPE_PROMPT = "[l]ike / [s]kip / [q]uit"
    SESSION_SUMMARY = "Liked {liked}, skipped {skipped}."
