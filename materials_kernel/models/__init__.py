"""ORM models for the materials kernel."""

from materials_kernel.models.alert import AlertModel
from materials_kernel.models.dependency import DependencyModel
from materials_kernel.models.inventory import BatchModel, InventoryMovementModel
from materials_kernel.models.material import (
    ActivityMaterialModel,
    MaterialModel,
    SupplierModel,
)
from materials_kernel.models.project import ActivityModel, ProjectModel
from materials_kernel.models.purchase_order import (
    ORDER_STATUS_CANCELLED,
    PurchaseOrderLineModel,
    PurchaseOrderModel,
)


def import_all_models() -> None:
    """Ensure every model is registered on Base.metadata.

    Importing this package already does so; the function exists so that
    create_tables() can make the dependency explicit.
    """


__all__ = [
    "ActivityMaterialModel",
    "ActivityModel",
    "AlertModel",
    "BatchModel",
    "DependencyModel",
    "InventoryMovementModel",
    "MaterialModel",
    "ORDER_STATUS_CANCELLED",
    "ProjectModel",
    "PurchaseOrderLineModel",
    "PurchaseOrderModel",
    "SupplierModel",
    "import_all_models",
]
