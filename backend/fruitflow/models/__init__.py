from fruitflow.models.user import User, UserRole
from fruitflow.models.product import Product, ProductUnit
from fruitflow.models.order import Order, OrderStatus, ShipmentStatus
from fruitflow.models.llm_log import LlmLog
from fruitflow.models.external_api_log import ExternalApiLog
from fruitflow.models.health_check_report import HealthCheckReport

__all__ = [
    "User",
    "UserRole",
    "Product",
    "ProductUnit",
    "Order",
    "OrderStatus",
    "ShipmentStatus",
    "LlmLog",
    "ExternalApiLog",
    "HealthCheckReport",
]
