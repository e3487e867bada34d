from werkzeug.security import generate_password_hash, check_password_hash
from funnel_builder.extensions import db
from .base import BaseModel

class User(BaseModel):
    __tablename__ = 'users'

    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False, default='')
    password_hash = db.Column(db.String(256), nullable=False)

    is_active = db.Column(db.Boolean, default=True)

    funnels = db.relationship(
        "Funnel",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)
