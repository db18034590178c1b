import enum

class UserRole(str, enum.Enum):
    admin = "ADMIN"
    staff = "STAFF"

class ProductStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"

class MovementType(str, enum.Enum):
    stock_in = "IN"
    stock_out = "OUT"
    adjustment = "ADJUSTMENT"

class AuditAction(str, enum.Enum):
    create = "CREATE"
    update = "UPDATE"
    delete = "DELETE"
    login = "LOGIN"
    logout = "LOGOUT"
    stock_movement = "STOCK_MOVEMENT"
    status_change = "STATUS_CHANGE"
