import enum
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fitapi.models.base import BaseModel, generate_uuid


class StepSourceEnum(str, enum.Enum):
    MANUAL = "manual"
    DEVICE = "device"
    WEARABLE = "wearable"
    IMPORT = "import"


class ValidationStatusEnum(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StepRecord(BaseModel):
    __tablename__ = "step_records"
    __table_args__ = (
        # 같은 날 같은 소스로 중복 제출 불가 (저장소 레벨에서 보장)
        UniqueConstraint(
            "user_id", "recorded_date", "source", name="uq_step_user_date_source"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    steps: Mapped[int] = mapped_column(Integer, nullable=False)
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # meters
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    recorded_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # 이 기록으로 지급된 보상 (삽입 시 한 번만 기록, 이후 수정 없음)
    coins_awarded: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class StepValidation(BaseModel):
    """의심 제출 건의 검증 결과 - 관리자 검토 큐"""

    __tablename__ = "step_validations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # 제출 원본 (승인 시 이 값으로 step record 생성)
    steps: Mapped[int] = mapped_column(Integer, nullable=False)
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    recorded_date: Mapped[date] = mapped_column(Date, nullable=False)

    anomaly_score: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ValidationStatusEnum.PENDING.value, index=True
    )

    reviewed_by_admin_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    admin_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    step_record_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
