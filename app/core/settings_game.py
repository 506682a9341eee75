import os
from dotenv import load_dotenv

load_dotenv()

# Orden fijo de los tramos: también es el orden en que se sirven las preguntas
TIERS = ("easy", "medium", "hard")


def _parse_quotas(raw: str) -> dict[str, int]:
    """'easy=10,medium=6,hard=5' -> {'easy': 10, 'medium': 6, 'hard': 5}"""
    out: dict[str, int] = {}
    for part in (raw or "").split(","):
        if not part.strip():
            continue
        tier, _, count = part.partition("=")
        tier = tier.strip().lower()
        if tier not in TIERS:
            raise ValueError(f"Tramo desconocido en GAME_TIER_QUOTAS: {tier!r}")
        out[tier] = max(0, int(count))
    return out


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# === Cupos por tramo para armar el set de preguntas (10/6/5 = 21 por defecto) ===
DEFAULT_TIER_QUOTAS = _parse_quotas(os.getenv("GAME_TIER_QUOTAS", "easy=10,medium=6,hard=5"))

# === Vidas: lives = MAX_LIVES - incorrect_answers ===
MAX_LIVES = int(os.getenv("GAME_MAX_LIVES", "3"))

# 1 = se guardan tal cual is_correct y los totales que manda el front
TRUST_CLIENT_SCORING = _flag("GAME_TRUST_CLIENT_SCORING")

# 1 = el payload de juego incluye correct_choice (el front valida localmente)
EXPOSE_CORRECT_CHOICE = _flag("GAME_EXPOSE_CORRECT_CHOICE")


def quotas_for(game) -> dict[str, int]:
    """Cupos del juego si los tiene configurados; si no, los globales."""
    custom = getattr(game, "tier_quotas", None) or {}
    if not custom:
        return dict(DEFAULT_TIER_QUOTAS)
    return {t: max(0, int(custom.get(t, 0) or 0)) for t in TIERS}
