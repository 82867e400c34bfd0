"""Helpers for classifying Supabase / PostgREST errors."""


def is_supabase_table_missing_error(error: Exception) -> bool:
    """
    Return True when Supabase reports that the referenced table is missing.

    PostgREST surfaces this as PGRST205 ("Could not find the table ... in the
    schema cache"); raw Postgres phrasing is "relation ... does not exist".
    """
    lowered = str(error).lower()
    return (
        "could not find the table" in lowered
        or "pgrst205" in lowered
        or "does not exist" in lowered
    )


def is_invalid_id_error(error: Exception) -> bool:
    """Return True when a non-UUID id was compared against a uuid column."""
    lowered = str(error).lower()
    return "invalid input syntax for type uuid" in lowered or "22p02" in lowered
