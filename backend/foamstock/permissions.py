"""
Permission vocabulary and role defaults.

Each permission is a boolean column on User (see models/auth.py); every
name here has a matching column.

- One capability per permission
- Role defaults are applied once, when the user is created
- The business owner can toggle individual permissions afterwards
"""

# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (name, label, description)
PERMISSION_DEFINITIONS = [
    ("view_profits", "View Profits", "See cost, margin and profit figures"),
    ("manage_users", "Manage Users", "Create, edit and deactivate staff accounts"),
    ("view_reports", "View Reports", "Access sales summaries and customer rankings"),
    ("manage_inventory", "Manage Inventory", "Create products, adjust and set stock"),
    ("manage_sales", "Manage Sales", "Create, edit, cancel and refund sales"),
    ("manage_customers", "Manage Customers", "Create and edit customer records"),
    ("manage_suppliers", "Manage Suppliers", "Create and edit supplier records"),
]

PERMISSION_NAMES = tuple(p[0] for p in PERMISSION_DEFINITIONS)


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

DEFAULT_ROLE_PERMISSIONS = {
    "business_owner": set(PERMISSION_NAMES),

    "sales_manager": {
        # view_profits needs an explicit grant from the owner
        "view_reports",
        "manage_inventory",
        "manage_sales",
        "manage_customers",
    },

    "salesperson": {
        "manage_sales",
        "manage_customers",
    },
}


def default_permissions_for_role(role: str) -> dict[str, bool]:
    """Full permission map for a freshly created user of the given role."""
    granted = DEFAULT_ROLE_PERMISSIONS.get(role, set())
    return {name: name in granted for name in PERMISSION_NAMES}

