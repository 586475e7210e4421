from sqlalchemy import Column, String, DateTime, Integer, Numeric, Boolean
from sqlalchemy.sql import func
from challan_dashboard.database import Base


class SettlementConfig(Base):
    """Settlement discount rule consumed by the aggregation pipeline"""
    __tablename__ = "settlement_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_name = Column(String, unique=True, nullable=False, index=True)
    source_type = Column(String, nullable=False)  # mparivahan, vcourt, delhi_police
    region = Column(String, nullable=False)  # ALL, DL, UP, HR

    # Optional cutoffs, each with its comparison (≤ or >)
    challan_year_cutoff = Column(Integer, nullable=True)
    year_cutoff_logic = Column(String, nullable=True)
    amount_cutoff = Column(Numeric(12, 2), nullable=True)
    amount_cutoff_logic = Column(String, nullable=True)

    settlement_percentage = Column(Numeric(7, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
