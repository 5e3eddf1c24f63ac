"""
大使（推荐计划）模型模块

定义大使、推荐点击、推荐成交、佣金和打款相关的数据库模型。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlmodel import Field, SQLModel

from app.enums import CommissionStatus

from .base import new_id, utc_now


class Ambassador(SQLModel, table=True):
    """
    大使模型

    每个大使拥有唯一的推荐码和佣金比例。统计字段（点击、成交、收益）
    由点击记录和佣金流程累加，后台看板直接读取。

    字段说明：
    - referral_code: 推荐码（唯一，大写）
    - commission_rate: 佣金比例（%，0-100，默认 15）
    - active: 是否启用，停用后推荐码不再产生成交
    - link_clicks: 推荐链接点击次数
    - total_sales: 已确认的推荐成交数
    - total_earnings: 已支付的佣金总额
    - pending_commission: 待支付的佣金总额
    """
    __tablename__ = "ambassadors"
    __table_args__ = (
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_ambassadors_commission_rate_range",
        ),
    )
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    user_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
        )
    )
    referral_code: str = Field(
        sa_column=Column(String(32), unique=True, index=True, nullable=False)
    )
    commission_rate: Decimal = Field(
        default=Decimal("15.00"),
        sa_column=Column(Numeric(5, 2), nullable=False),
    )
    active: bool = Field(default=True)

    link_clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    total_sales: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    total_earnings: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    pending_commission: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ReferralClick(SQLModel, table=True):
    """
    推荐链接点击记录（只追加）

    每次点击都会记录，与浏览器是否已有归因无关。
    推荐码不属于任何大使时 ambassador_id 为空。
    """
    __tablename__ = "referral_clicks"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    ambassador_id: str | None = Field(
        default=None,
        sa_column=Column(
            String(36), ForeignKey("ambassadors.id", ondelete="SET NULL"), index=True, nullable=True
        ),
    )
    referral_code: str = Field(sa_column=Column(String(32), index=True, nullable=False))
    utm_source: str | None = Field(default=None, max_length=128)
    utm_medium: str | None = Field(default=None, max_length=128)
    utm_campaign: str | None = Field(default=None, max_length=128)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class AmbassadorReferral(SQLModel, table=True):
    """
    推荐成交记录

    checkout 时浏览器带有有效推荐码即写入，把订单归因到大使。
    每个订阅最多归因一次（subscription_id 唯一）。
    """
    __tablename__ = "ambassador_referrals"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    ambassador_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("ambassadors.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    referred_user_id: str = Field(
        sa_column=Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    )
    subscription_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("subscriptions.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        )
    )
    referral_code: str = Field(max_length=32)
    plan_name: str = Field(default="", max_length=128)
    sale_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class AmbassadorPayout(SQLModel, table=True):
    """
    大使打款记录

    管理员一次性结算某个大使所有待支付佣金时生成，被结算的佣金通过 payout_id 关联到这里。

    字段说明：
    - reference_period: 结算所属月份（YYYY-MM）
    - total_sales: 本次结算的佣金笔数
    - gross_amount: 佣金合计
    - net_amount: 实际打款金额（扣除手续费后，不超过 gross_amount）
    - payment_method: 打款方式（pix / bank_transfer）
    """
    __tablename__ = "ambassador_payouts"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    ambassador_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("ambassadors.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    reference_period: str = Field(sa_column=Column(String(7), index=True, nullable=False))
    total_sales: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    gross_amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    net_amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    payment_method: str | None = Field(default=None, max_length=32)
    notes: str | None = Field(default=None, max_length=1024)
    paid_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Commission(SQLModel, table=True):
    """
    佣金记录

    订阅激活时根据推荐成交生成，commission_rate 为生成时大使的佣金比例，
    之后修改比例不影响已有记录。每条推荐成交最多一条佣金（referral_id 唯一）。
    通过打款结算后 payout_id 指向对应的打款记录。
    """
    __tablename__ = "commissions"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    ambassador_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("ambassadors.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    referral_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("ambassador_referrals.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        )
    )
    subscription_id: str = Field(sa_column=Column(String(36), index=True, nullable=False))
    sale_amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    commission_rate: Decimal = Field(sa_column=Column(Numeric(5, 2), nullable=False))
    commission_amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    status: CommissionStatus = Field(
        default=CommissionStatus.pending,
        sa_column=Column(String(16), index=True, nullable=False),
    )
    paid_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    payout_id: str | None = Field(
        default=None,
        sa_column=Column(
            String(36),
            ForeignKey("ambassador_payouts.id", ondelete="SET NULL"),
            index=True,
            nullable=True,
        ),
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
