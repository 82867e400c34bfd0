"""Map sentiment scores to client status labels."""
from clientpulse.models.schemas import ClientStatus

# (min score, status) - uses >= comparison in order
STATUS_BANDS = [
    (9, ClientStatus.EXTREMELY_SATISFIED),
    (7, ClientStatus.SATISFIED),
    (5, ClientStatus.NEUTRAL),
    (3, ClientStatus.DISSATISFIED),
    (0, ClientStatus.CRITICAL),
]


def classify_score(score: int) -> ClientStatus:
    """Return the status band for a 0-10 sentiment score (clamped)."""
    clamped = max(0, min(10, int(score)))
    for threshold, status in STATUS_BANDS:
        if clamped >= threshold:
            return status
    return ClientStatus.CRITICAL
