from .store import db, TimestampMixin, to_iso

role_permissions = db.Table(
    "role_permissions",
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
    db.Column("permission_id", db.Integer, db.ForeignKey("permissions.id"), primary_key=True),
)


class Permission(db.Model):
    __tablename__ = "permissions"
    __table_args__ = (db.UniqueConstraint("resource", "action", name="uq_permission_resource_action"),)

    id = db.Column(db.Integer, primary_key=True)
    resource = db.Column(db.String(50), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(200))

    def __repr__(self) -> str:
        return f"<Permission {self.resource}:{self.action}>"


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(200))

    permissions = db.relationship("Permission", secondary=role_permissions, lazy="selectin")
    users = db.relationship("User", back_populates="role")

    def grants(self) -> set[tuple[str, str]]:
        return {(p.resource, p.action) for p in self.permissions}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": sorted(f"{r}:{a}" for r, a in self.grants()),
        }

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class User(TimestampMixin, db.Model):
    """
    Back-office staff account. Exactly one role; the role's grants are the
    user's effective permission set.
    """
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(50))
    password_hash = db.Column(db.String(256), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False)

    role = db.relationship("Role", back_populates="users", lazy="joined")

    def can(self, resource: str, action: str) -> bool:
        return (resource, action) in self.role.grants()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "is_active": self.is_active,
            "role_id": self.role_id,
            "role": self.role.name if self.role else None,
            "created_at": to_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Notification(TimestampMixin, db.Model):
    """
    Persisted notification. Addressed to one user, to every member of one
    role, or globally (both ids null); never to a user and a role at once.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint("user_id IS NULL OR role_id IS NULL", name="ck_notification_single_address"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=True, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    requires_action = db.Column(db.Boolean, nullable=False, default=False)
    action_type = db.Column(db.String(50))

    user = db.relationship("User", foreign_keys=[user_id])
    sender = db.relationship("User", foreign_keys=[sender_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role_id": self.role_id,
            "sender_id": self.sender_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "is_read": self.is_read,
            "requires_action": self.requires_action,
            "action_type": self.action_type,
            "created_at": to_iso(self.created_at),
        }
