from __future__ import annotations

from decimal import Decimal, localcontext

from pydantic import BaseModel, ConfigDict


def quantized_str(value: Decimal | None, places: int) -> str | None:
    """Round to ``places`` decimals whatever the magnitude of ``value``."""
    if value is None:
        return None
    with localcontext() as ctx:
        # quantize echoue si le resultat depasse la precision du contexte
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return str(value.quantize(Decimal(1).scaleb(-places)))


class DecimalBaseModel(BaseModel):
    model_config = ConfigDict(json_encoders={Decimal: str})


class OrmModel(DecimalBaseModel):
    model_config = ConfigDict(json_encoders={Decimal: str}, from_attributes=True)
