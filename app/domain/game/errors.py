from dataclasses import dataclass


class Unauthorized(Exception):
    """La sesión no pertenece al cliente/juego o ya no está activa."""


class GameUnavailable(Exception):
    """Juego inactivo: no se ofrece para jugar."""


class SubmissionInvalid(Exception):
    """Envío con datos que no cuadran con la DB. `errors` va en formato FastAPI (loc/msg/type)."""

    def __init__(self, errors: list[dict]):
        super().__init__(f"{len(errors)} error(es) en el envío")
        self.errors = errors

    @classmethod
    def single(cls, loc: tuple, msg: str) -> "SubmissionInvalid":
        return cls([{"loc": list(loc), "msg": msg, "type": "value_error"}])


class StatsRecomputeFailure(Exception):
    """No se pudieron recalcular las estadísticas del juego; la sesión ya quedó guardada."""


@dataclass(frozen=True)
class InsufficientQuestions:
    """No es error: el tramo se sirve con menos preguntas y se deja constancia en el log."""
    tier: str
    required: int
    available: int


class ConcurrentUpdate(Exception):
    """Otra request modificó la sesión entre la lectura y la escritura."""
