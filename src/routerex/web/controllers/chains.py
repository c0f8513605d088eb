"""Network listing endpoints."""

from fastapi import APIRouter, HTTPException

from routerex.chains import Family, get_all_chains, get_chain
from routerex.config import get_settings
from routerex.routing.hubs import hub_network
from routerex.web.contracts.chains import ChainInfo, ChainListResponse

router = APIRouter(prefix="/chains", tags=["chains"])


def _chain_info(chain) -> ChainInfo:
    return ChainInfo(
        id=chain.key,
        name=chain.name,
        family=chain.family.value,
        chain_id=chain.chain_id,
        native_symbol=chain.native_symbol,
        explorer_url=chain.explorer_url,
        hub=hub_network(chain.family, get_settings().evm_hub_network) == chain.key,
    )


@router.get("", response_model=ChainListResponse, response_model_by_alias=True)
async def list_chains() -> ChainListResponse:
    """List networks in the allowed families."""
    allowed = get_settings().allowed_families
    chains = [
        _chain_info(c) for c in get_all_chains()
        if c.family != Family.UNSUPPORTED and c.family.value in allowed
    ]
    return ChainListResponse(chains=chains, total=len(chains))


@router.get("/{network_id}", response_model=ChainInfo, response_model_by_alias=True)
async def get_chain_info(network_id: str) -> ChainInfo:
    chain = get_chain(network_id)
    if chain is None:
        raise HTTPException(status_code=404, detail=f"Network not found: {network_id}")
    return _chain_info(chain)
