"""Permission catalog and default role ladder.

The catalog is reference data: ``PermissionService.sync_catalog`` upserts it
by slug at setup time, so bumping ``CATALOG_VERSION`` and re-running the seed
is always safe.
"""

from typing import Dict, List, Tuple

CATALOG_VERSION = 3

# (resource, action, display name)
PERMISSION_CATALOG: Tuple[Tuple[str, str, str], ...] = (
    # Admin console
    ("admin", "access", "Admin Access"),
    ("admin", "settings", "Admin Settings"),

    # Users
    ("users", "read", "Read Users"),
    ("users", "create", "Create Users"),
    ("users", "update", "Update Users"),
    ("users", "delete", "Delete Users"),
    ("users", "manage_roles", "Manage User Roles"),

    # Roles
    ("roles", "read", "Read Roles"),
    ("roles", "create", "Create Roles"),
    ("roles", "update", "Update Roles"),
    ("roles", "delete", "Delete Roles"),

    # Permissions
    ("permissions", "read", "Read Permissions"),
    ("permissions", "create", "Create Permissions"),
    ("permissions", "update", "Update Permissions"),
    ("permissions", "delete", "Delete Permissions"),

    # Posts
    ("posts", "read", "Read Posts"),
    ("posts", "create", "Create Posts"),
    ("posts", "update", "Update Posts"),
    ("posts", "delete", "Delete Posts"),
    ("posts", "publish", "Publish Posts"),
    ("posts", "feature", "Feature Posts"),

    # Comments
    ("comments", "read", "Read Comments"),
    ("comments", "create", "Create Comments"),
    ("comments", "update", "Update Comments"),
    ("comments", "delete", "Delete Comments"),
    ("comments", "moderate", "Moderate Comments"),

    # Tags
    ("tags", "read", "Read Tags"),
    ("tags", "create", "Create Tags"),
    ("tags", "update", "Update Tags"),
    ("tags", "delete", "Delete Tags"),

    # Analytics
    ("analytics", "read", "Read Analytics"),
    ("analytics", "export", "Export Analytics"),
)

ALL_SLUGS: List[str] = [f"{resource}.{action}" for resource, action, _ in PERMISSION_CATALOG]

_ACCESS_CONTROL_RESOURCES = ("roles.", "permissions.")
_CONTENT_RESOURCES = ("posts.", "comments.", "tags.")

DEFAULT_ROLES: List[Dict] = [
    {
        "name": "Super Admin",
        "slug": "super-admin",
        "description": "Full system access with all permissions",
        "is_system": True,
        "is_admin_role": True,
        "permissions": list(ALL_SLUGS),
    },
    {
        "name": "Admin",
        "slug": "admin",
        "description": "Administrative access except role and permission management",
        "is_system": True,
        "is_admin_role": True,
        "permissions": [s for s in ALL_SLUGS if not s.startswith(_ACCESS_CONTROL_RESOURCES)],
    },
    {
        "name": "Editor",
        "slug": "editor",
        "description": "Reads and writes posts, comments and tags",
        "is_system": False,
        "is_admin_role": False,
        "permissions": [s for s in ALL_SLUGS if s.startswith(_CONTENT_RESOURCES)] + ["admin.access"],
    },
    {
        "name": "Author",
        "slug": "author",
        "description": "Writes and edits own posts",
        "is_system": False,
        "is_admin_role": False,
        "permissions": [
            "posts.read", "posts.create", "posts.update",
            "comments.read", "comments.create", "tags.read",
        ],
    },
    {
        "name": "User",
        "slug": "user",
        "description": "Read-only access plus commenting",
        "is_system": False,
        "is_admin_role": False,
        "permissions": ["posts.read", "comments.read", "comments.create", "tags.read"],
    },
]
