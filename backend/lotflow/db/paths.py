"""
Firestore document paths used across services
"""
from lotflow.core.settings import get_settings


def dashboards_path() -> str:
    return get_settings().DASHBOARDS_COLLECTION


def lots_path(dashboard_id: str) -> str:
    return f"{dashboards_path()}/{dashboard_id}/lots"


def lot_path(dashboard_id: str, lot_id: str) -> str:
    return f"{lots_path(dashboard_id)}/{lot_id}"


def dashboard_product_path(dashboard_id: str, product_id: str) -> str:
    return f"{dashboards_path()}/{dashboard_id}/products/{product_id}"


def stock_products_path() -> str:
    return get_settings().STOCK_PRODUCTS_COLLECTION


def stock_product_path(stock_product_id: str) -> str:
    return f"{stock_products_path()}/{stock_product_id}"


def stock_movement_path(movement_id: str) -> str:
    return f"{get_settings().STOCK_MOVEMENTS_COLLECTION}/{movement_id}"


def role_path(user_id: str) -> str:
    return f"{get_settings().ROLES_COLLECTION}/{user_id}"
