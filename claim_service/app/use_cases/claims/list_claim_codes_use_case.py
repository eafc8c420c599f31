from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.libs.result import Result, Return
from .dtos import ClaimCodeListResponse, ClaimCodeResponse


class ListClaimCodesUseCase:
    """
    List the newest claim codes visible to the caller.

    Global superadmins see every tenant; everyone else sees tenants they
    administer.
    """

    def __init__(self, uow: UnitOfWork, limit: int = 100):
        self.uow = uow
        self.limit = limit

    async def execute(self, auth: AuthContext) -> Result[ClaimCodeListResponse]:
        tenant_ids = None if auth.is_global_superadmin else auth.administered_tenants()

        async with self.uow:
            if tenant_ids == []:
                codes = []
            else:
                codes = await self.uow.claim_codes.list_recent(tenant_ids, limit=self.limit)

            return Return.ok(
                ClaimCodeListResponse(
                    claim_codes=[ClaimCodeResponse.from_entity(c) for c in codes]
                )
            )
