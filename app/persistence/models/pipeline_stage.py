"""Pipeline stage model."""

from sqlalchemy import Column, Integer, String

from app.persistence.database import Base

DEFAULT_PIPELINE_STAGES = (
    ("Lead", "#94a3b8"),
    ("Contactado", "#60a5fa"),
    ("Propuesta", "#fbbf24"),
    ("Negociacion", "#f97316"),
    ("Cerrado", "#22c55e"),
)


class PipelineStage(Base):
    """Pipeline stage definition for the opportunities board."""

    __tablename__ = "pipeline_stages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    order = Column(Integer, nullable=False)
    color = Column(String(7), nullable=False, default="#94a3b8")

    def __repr__(self) -> str:
        return f"<PipelineStage(id={self.id}, name={self.name}, order={self.order})>"
