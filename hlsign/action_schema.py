# hlsign/action_schema.py
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Num = Union[Decimal, int, float, str]
Grouping = Literal["na", "normalTpsl", "positionTpsl"]
Tif = Literal["Alo", "Ioc", "Gtc"]

CLOID_PATTERN = r"^0x[0-9a-fA-F]{32}$"
ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class ActionType(str, Enum):
    """Every action the exchange accepts from this pipeline."""
    ORDER = "order"
    CANCEL = "cancel"
    CANCEL_BY_CLOID = "cancelByCloid"
    MODIFY = "modify"
    BATCH_MODIFY = "batchModify"
    UPDATE_LEVERAGE = "updateLeverage"
    UPDATE_ISOLATED_MARGIN = "updateIsolatedMargin"
    USD_SEND = "usdSend"
    SPOT_SEND = "spotSend"
    WITHDRAW = "withdraw3"
    APPROVE_AGENT = "approveAgent"
    APPROVE_BUILDER_FEE = "approveBuilderFee"
    SCHEDULE_CANCEL = "scheduleCancel"
    VAULT_TRANSFER = "vaultTransfer"
    SET_REFERRER = "setReferrer"
    SPOT_USER = "spotUser"


class _Intent(BaseModel):
    model_config = ConfigDict(frozen=True)


class Builder(_Intent):
    """Fee-recipient attribution: `b` address, `f` fee in tenths of a basis point."""
    b: str = Field(pattern=ADDRESS_PATTERN)
    f: int = Field(ge=0)

    @field_validator("b")
    @classmethod
    def lower_address(cls, v):
        return v.lower()


class OrderRequest(_Intent):
    coin: str = Field(min_length=1)
    is_buy: bool
    limit_px: Num
    sz: Num
    reduce_only: bool = False
    # shape is checked by the wire encoder, which owns InvalidOrderTypeError
    order_type: Dict[str, Any]
    cloid: Optional[str] = Field(default=None, pattern=CLOID_PATTERN)


class CancelRequest(_Intent):
    coin: str = Field(min_length=1)
    o: int = Field(ge=0)


class CancelByCloidRequest(_Intent):
    coin: str = Field(min_length=1)
    cloid: str = Field(pattern=CLOID_PATTERN)


class ModifyRequest(_Intent):
    oid: Union[int, str]
    order: OrderRequest

    @field_validator("oid")
    @classmethod
    def oid_or_cloid(cls, v):
        if isinstance(v, str) and not v.startswith("0x"):
            raise ValueError("oid must be an order id or a 0x cloid")
        return v
