"""
Menu router.
Public menu browsing and the list of tables free to order at.
"""

from fastapi import APIRouter, Depends, Query

from shared.config.constants import Limits
from shared.utils.schemas import MenuItemOutput, MenuOutput, TableOutput
from rest_api.core.dependencies import get_menu_service, get_table_service
from rest_api.services.domain import MenuService, TableService


router = APIRouter(prefix="/api", tags=["menu"])


@router.get("/menu", response_model=MenuOutput)
def get_menu(
    category: str | None = Query(default=None, max_length=Limits.MAX_CATEGORY_LENGTH),
    search: str | None = Query(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH),
    menu_service: MenuService = Depends(get_menu_service),
) -> MenuOutput:
    """
    Visible menu items, optionally narrowed to one category and a search term.

    Items marked unavailable are listed (greyed out on the client) but
    cannot be ordered.
    """
    items = menu_service.list_visible(category=category, search=search)
    return MenuOutput(
        categories=menu_service.categories(),
        items=[MenuItemOutput.model_validate(item) for item in items],
    )


@router.get("/tables/available", response_model=list[TableOutput])
def list_available_tables(
    table_service: TableService = Depends(get_table_service),
) -> list[TableOutput]:
    return [TableOutput.model_validate(table) for table in table_service.list_available()]
