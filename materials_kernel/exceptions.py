"""
Typed Exception Hierarchy for the Materials Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (a CLI, a service API, a desktop backend) must react to failures by
category, not by parsing messages:

    try:
        engine.confirm_progress(activity_id, Decimal("60"), consumptions)
    except NotFoundError as e:
        return http_404(code=e.code)
    except ValidationError as e:
        return http_422(code=e.code, detail=str(e))

Every exception carries a ``code`` class attribute (machine-readable) and its
context as attributes (never only a message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MaterialsKernelError (base)
    |
    +-- NotFoundError
    |   +-- ProjectNotFoundError
    |   +-- ActivityNotFoundError
    |   +-- MaterialNotFoundError
    |   +-- ActivityMaterialNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidProgressError
    |   +-- SimulationBelowCurrentProgressError
    |   +-- InvalidQuantityError
    |   +-- EstimateExceedsStockError
    |   +-- DuplicateAssignmentError
    |   +-- ForeignActivityMaterialError
    |   +-- InvalidDependencyError
    |   +-- DependencyCycleError
    |   +-- InvalidAlertTransitionError
    |
    +-- InventoryError
    |   +-- InsufficientStockError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                              | When Raised
-------------|-----------------------------------|-----------------------------------
Not found    | PROJECT_NOT_FOUND                 | Project ID doesn't exist
             | ACTIVITY_NOT_FOUND                | Activity ID doesn't exist
             | MATERIAL_NOT_FOUND                | Material ID doesn't exist
             | SUPPLIER_NOT_FOUND                | Supplier ID doesn't exist
             | ACTIVITY_MATERIAL_NOT_FOUND       | Activity-material link missing
             | ALERT_NOT_FOUND                   | Alert ID doesn't exist
-------------|-----------------------------------|-----------------------------------
Validation   | INVALID_PROGRESS                  | Progress out of range / regression
             | SIMULATION_BELOW_CURRENT_PROGRESS | What-if below current progress
             | INVALID_QUANTITY                  | Negative or zero quantity
             | ESTIMATE_EXCEEDS_STOCK            | New link estimate > stock
             | DUPLICATE_ASSIGNMENT              | Material already on activity
             | FOREIGN_ACTIVITY_MATERIAL         | Link belongs to another activity
             | INVALID_DEPENDENCY                | Self edge / cross-project edge
             | DEPENDENCY_CYCLE                  | Edge would close a cycle
             | INVALID_ALERT_TRANSITION          | Alert is not pending
-------------|-----------------------------------|-----------------------------------
Inventory    | INSUFFICIENT_STOCK                | Direct withdrawal exceeds stock
-------------|-----------------------------------|-----------------------------------
Config       | CONFIGURATION_ERROR               | Invalid settings file / values

Insufficient stock during progress confirmation is NOT an exception: the
quantity is capped and a warning is returned to the caller instead.

===============================================================================
"""


class MaterialsKernelError(Exception):
    """
    Base exception for all materials kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MATERIALS_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(MaterialsKernelError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project with given ID was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ActivityNotFoundError(NotFoundError):
    """Activity with given ID was not found."""

    code: str = "ACTIVITY_NOT_FOUND"

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity not found: {activity_id}")


class MaterialNotFoundError(NotFoundError):
    """Material with given ID was not found."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__(f"Material not found: {material_id}")


class ActivityMaterialNotFoundError(NotFoundError):
    """Activity-material link with given ID was not found."""

    code: str = "ACTIVITY_MATERIAL_NOT_FOUND"

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__(f"Activity material link not found: {link_id}")


class AlertNotFoundError(NotFoundError):
    """Alert with given ID was not found."""

    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


# Validation exceptions


class ValidationError(MaterialsKernelError):
    """Base exception for invalid caller input. No state is changed."""

    code: str = "VALIDATION_ERROR"


class InvalidProgressError(ValidationError):
    """New progress is outside 0-100 or does not advance current progress."""

    code: str = "INVALID_PROGRESS"

    def __init__(self, activity_id: str, current_progress: str, new_progress: str, reason: str):
        self.activity_id = activity_id
        self.current_progress = current_progress
        self.new_progress = new_progress
        self.reason = reason
        super().__init__(
            f"Invalid progress {new_progress} for activity {activity_id} "
            f"(current {current_progress}): {reason}"
        )


class SimulationBelowCurrentProgressError(ValidationError):
    """Hypothetical progress is lower than the project's current progress."""

    code: str = "SIMULATION_BELOW_CURRENT_PROGRESS"

    def __init__(self, project_id: str, current_progress: str, hypothetical_progress: str):
        self.project_id = project_id
        self.current_progress = current_progress
        self.hypothetical_progress = hypothetical_progress
        super().__init__(
            f"Simulated progress {hypothetical_progress} is below current "
            f"progress {current_progress} for project {project_id}"
        )


class InvalidQuantityError(ValidationError):
    """A quantity argument is negative, zero where positive is required, or not finite."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: str, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class EstimateExceedsStockError(ValidationError):
    """A new activity-material link estimates more than the material has in stock."""

    code: str = "ESTIMATE_EXCEEDS_STOCK"

    def __init__(self, material_id: str, estimated_quantity: str, available_stock: str):
        self.material_id = material_id
        self.estimated_quantity = estimated_quantity
        self.available_stock = available_stock
        super().__init__(
            f"Estimated quantity {estimated_quantity} exceeds current stock "
            f"{available_stock} of material {material_id}"
        )


class DuplicateAssignmentError(ValidationError):
    """The material is already assigned to the activity."""

    code: str = "DUPLICATE_ASSIGNMENT"

    def __init__(self, activity_id: str, material_id: str):
        self.activity_id = activity_id
        self.material_id = material_id
        super().__init__(
            f"Material {material_id} is already assigned to activity {activity_id}"
        )


class ForeignActivityMaterialError(ValidationError):
    """A consumption references a link owned by a different activity."""

    code: str = "FOREIGN_ACTIVITY_MATERIAL"

    def __init__(self, link_id: str, activity_id: str):
        self.link_id = link_id
        self.activity_id = activity_id
        super().__init__(
            f"Activity material link {link_id} does not belong to activity {activity_id}"
        )


class InvalidDependencyError(ValidationError):
    """Precedence edge is malformed (self edge, cross-project, unknown type)."""

    code: str = "INVALID_DEPENDENCY"

    def __init__(self, activity_id: str, predecessor_id: str, reason: str):
        self.activity_id = activity_id
        self.predecessor_id = predecessor_id
        self.reason = reason
        super().__init__(
            f"Invalid dependency {predecessor_id} -> {activity_id}: {reason}"
        )


class DependencyCycleError(ValidationError):
    """Adding the precedence edge would close a cycle in the activity graph."""

    code: str = "DEPENDENCY_CYCLE"

    def __init__(self, activity_id: str, predecessor_id: str, cycle: list[str]):
        self.activity_id = activity_id
        self.predecessor_id = predecessor_id
        self.cycle = cycle
        super().__init__(
            f"Dependency {predecessor_id} -> {activity_id} would create a cycle: "
            + " -> ".join(cycle)
        )


class InvalidAlertTransitionError(ValidationError):
    """Only pending alerts may be acknowledged or dismissed."""

    code: str = "INVALID_ALERT_TRANSITION"

    def __init__(self, alert_id: str, current_status: str, target_status: str):
        self.alert_id = alert_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Alert {alert_id} cannot move from {current_status} to {target_status}"
        )


# Inventory exceptions


class InventoryError(MaterialsKernelError):
    """Base exception for stock-level errors."""

    code: str = "INVENTORY_ERROR"


class InsufficientStockError(InventoryError):
    """A direct withdrawal asks for more than the material has in stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, material_id: str, requested_quantity: str, available_quantity: str):
        self.material_id = material_id
        self.requested_quantity = requested_quantity
        self.available_quantity = available_quantity
        super().__init__(
            f"Insufficient stock for material {material_id}: "
            f"requested {requested_quantity}, available {available_quantity}"
        )


# Configuration exceptions


class ConfigurationError(MaterialsKernelError):
    """Settings file or values are invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message if source is None else f"{source}: {message}")
