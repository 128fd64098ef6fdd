"""
Company API endpoints.
"""

from fastapi import APIRouter, Response, status

from tussles.api.deps import CompanyServiceDep, CurrentUser
from tussles.schemas.common import ApiResponse
from tussles.schemas.companies import CompanyCreateRequest, CompanyResponse

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get(
    "",
    response_model=ApiResponse[list[CompanyResponse]],
    summary="List companies alphabetically",
)
async def list_companies(
    current_user: CurrentUser,
    service: CompanyServiceDep,
) -> ApiResponse[list[CompanyResponse]]:
    companies = await service.list_companies()
    return ApiResponse(data=[CompanyResponse.model_validate(c) for c in companies])


@router.post(
    "",
    response_model=ApiResponse[CompanyResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a company",
    responses={200: {"description": "A company with this name already exists"}},
)
async def create_company(
    request: CompanyCreateRequest,
    response: Response,
    current_user: CurrentUser,
    service: CompanyServiceDep,
) -> ApiResponse[CompanyResponse]:
    """
    Register a company, or return the existing one whose name matches
    ignoring case (answered with 200 instead of 201).
    """
    company, created = await service.get_or_create(request, current_user)
    if not created:
        response.status_code = status.HTTP_200_OK
        message = "Company already exists"
    else:
        message = "Company created successfully"
    return ApiResponse(message=message, data=CompanyResponse.model_validate(company))
