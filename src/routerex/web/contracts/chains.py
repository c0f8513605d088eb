"""Network listing contracts."""

from typing import Optional

from pydantic import BaseModel, Field


class ChainInfo(BaseModel):
    """Supported network."""

    id: str = Field(..., description="Network id (ethereum, solana, ...)")
    name: str
    family: str
    chain_id: Optional[int] = Field(None, alias="chainId")
    native_symbol: str = Field(..., alias="nativeSymbol")
    explorer_url: Optional[str] = Field(None, alias="explorerUrl")
    hub: bool = Field(default=False, description="Hub network for its family")

    class Config:
        populate_by_name = True


class ChainListResponse(BaseModel):
    ok: bool = True
    chains: list[ChainInfo]
    total: int
