# funnel_builder/models/funnel.py
from funnel_builder.extensions import db
from .base import BaseModel, utc_now


class Funnel(BaseModel):
    __tablename__ = 'funnels'

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    # {"sections": [...]} and {"backgroundColor", "maxWidth", "fontFamily"}
    content = db.Column(db.JSON(none_as_null=True), default=dict)
    settings = db.Column(db.JSON(none_as_null=True), default=dict)

    is_published = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default='draft')

    views = db.Column(db.Integer, nullable=False, default=0)
    conversions = db.Column(db.Integer, nullable=False, default=0)
    conversion_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    published_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("user_id", "slug", name="uq_funnel_slug_per_user"),
        db.Index("ix_funnels_user_status", "user_id", "status"),
    )

    user = db.relationship("User", back_populates="funnels")

    def increment_views(self):
        self.views = (self.views or 0) + 1
        self._update_conversion_rate()

    def increment_conversions(self):
        self.conversions = (self.conversions or 0) + 1
        self._update_conversion_rate()

    def _update_conversion_rate(self):
        if self.views:
            self.conversion_rate = round((self.conversions or 0) / self.views * 100, 2)

    def publish(self):
        self.is_published = True
        self.status = "published"
        self.published_at = utc_now()

    def unpublish(self):
        self.is_published = False
        self.status = "draft"
        self.published_at = None
