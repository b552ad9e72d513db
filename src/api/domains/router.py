from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.api.core.dependencies import (
    CurrentAccountAuthDep,
    DomainPurchaseCoordinatorDep,
    DomainRegistryDep,
)
from src.api.core.exceptions.base import ConflictError
from src.api.core.messages import APIResponse, MessageCode
from src.api.domains.schemas import (
    CheckoutModel,
    CheckoutResponse,
    DomainListModel,
    DomainListResponse,
    DomainModel,
    DomainPurchaseRequest,
    DomainResponse,
    ExtraDomainListModel,
    ExtraDomainListResponse,
    PlanLimitsModel,
    PlanLimitsResponse,
    PurchaseModel,
    PurchaseResponse,
)
from src.database.models import PurchaseStatus

router = APIRouter(prefix="/domains", tags=["domains"])


@router.get("/all", response_model=DomainListResponse)
async def list_domains(
    registry: DomainRegistryDep,
    current: CurrentAccountAuthDep,
) -> DomainListResponse:
    """Base domain, extra domains (active and cancelled) and current plan limits."""
    account = current.account
    base_domain = await registry.get_base_domain(account.id)
    extra_domains = await registry.list_extra_domains(account.id)
    limits = await registry.evaluate_limits(account)
    return APIResponse.success(
        data=DomainListModel(
            base_domain=DomainModel.model_validate(base_domain),
            extra_domains=[DomainModel.model_validate(d) for d in extra_domains],
            limits=PlanLimitsModel.model_validate(limits),
        )
    )


@router.get("/additional", response_model=ExtraDomainListResponse)
async def list_additional_domains(
    registry: DomainRegistryDep,
    current: CurrentAccountAuthDep,
) -> ExtraDomainListResponse:
    """Active extra domains with their billing details, newest first."""
    domains = await registry.list_extra_domains(current.account.id, active_only=True)
    return APIResponse.success(
        data=ExtraDomainListModel(
            domains=[DomainModel.model_validate(d) for d in domains],
            total=len(domains),
        )
    )


@router.get("/limits", response_model=PlanLimitsResponse)
async def get_limits(
    registry: DomainRegistryDep,
    current: CurrentAccountAuthDep,
) -> PlanLimitsResponse:
    limits = await registry.evaluate_limits(current.account)
    return APIResponse.success(data=PlanLimitsModel.model_validate(limits))


@router.post(
    "/purchase",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def purchase_domain(
    purchase_data: DomainPurchaseRequest,
    coordinator: DomainPurchaseCoordinatorDep,
    current: CurrentAccountAuthDep,
) -> CheckoutResponse:
    """Start the checkout for an extra domain. The domain is added once paid."""
    purchase, session = await coordinator.initiate_purchase(
        current.account, purchase_data.domain
    )
    return APIResponse.success(
        message_code=MessageCode.PURCHASE_CREATED,
        data=CheckoutModel(
            checkout_url=session.url,
            session_id=session.id,
            domain=purchase.host,
            price_cents=purchase.price_cents,
        ),
    )


@router.get("/verify-purchase/{session_id}", response_model=PurchaseResponse)
async def verify_purchase(
    session_id: str,
    coordinator: DomainPurchaseCoordinatorDep,
    current: CurrentAccountAuthDep,
):
    purchase = await coordinator.verify_purchase(current.account, session_id)

    if purchase.status == PurchaseStatus.FAILED:
        raise ConflictError(
            MessageCode.PURCHASE_FAILED,
            {"session_id": session_id, "domain": purchase.host},
        )

    data = PurchaseModel.from_purchase(purchase)
    if purchase.status == PurchaseStatus.PENDING:
        body = APIResponse[PurchaseModel].success(
            message_code=MessageCode.PURCHASE_PENDING, data=data
        )
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=body.model_dump(mode="json"),
        )

    return APIResponse.success(message_code=MessageCode.PURCHASE_COMPLETED, data=data)


@router.post("/cancel/{domain_id}", response_model=DomainResponse)
async def cancel_domain(
    domain_id: UUID,
    coordinator: DomainPurchaseCoordinatorDep,
    current: CurrentAccountAuthDep,
) -> DomainResponse:
    """Cancel an extra domain. Its API key is revoked immediately."""
    domain = await coordinator.cancel_domain(current.account, domain_id)
    return APIResponse.success(
        message_code=MessageCode.DOMAIN_CANCELLED,
        data=DomainModel.model_validate(domain),
    )
