from datetime import datetime, timezone

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def caller_identifier(forwarded_for: str | None, peer_host: str | None) -> str:
    """Rate-limit key: proxy-supplied address first, then the socket peer."""
    if forwarded_for and forwarded_for.strip():
        return forwarded_for.strip()
    if peer_host:
        return peer_host
    return "unknown"
