"""create_planning_tables

Revision ID: 3b1f9c2d7e40
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3b1f9c2d7e40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Apply migration - create seasonal_event, model_weights and forecast_accuracy tables."""
    # Create seasonal_event table
    op.create_table(
        "seasonal_event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("event_type", sa.String(length=20), nullable=False),
        # Window
        sa.Column("start_month", sa.Integer(), nullable=False),
        sa.Column("start_day", sa.Integer(), nullable=False),
        sa.Column("end_month", sa.Integer(), nullable=False),
        sa.Column("end_day", sa.Integer(), nullable=False),
        # Multipliers
        sa.Column("base_multiplier", sa.Float(), nullable=False),
        sa.Column("learned_multiplier", sa.Float(), nullable=True),
        sa.Column(
            "sku_multipliers",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("base_multiplier > 0", name="ck_seasonal_event_base_multiplier_positive"),
        sa.CheckConstraint(
            "learned_multiplier IS NULL OR learned_multiplier > 0",
            name="ck_seasonal_event_learned_multiplier_positive",
        ),
        sa.CheckConstraint(
            "start_month BETWEEN 1 AND 12 AND end_month BETWEEN 1 AND 12",
            name="ck_seasonal_event_valid_months",
        ),
        sa.CheckConstraint(
            "start_day BETWEEN 1 AND 31 AND end_day BETWEEN 1 AND 31",
            name="ck_seasonal_event_valid_days",
        ),
        sa.CheckConstraint(
            "event_type IN ('micro_peak', 'major_peak', 'custom')",
            name="ck_seasonal_event_valid_type",
        ),
    )
    op.create_index(op.f("ix_seasonal_event_name"), "seasonal_event", ["name"], unique=True)
    op.create_index(
        op.f("ix_seasonal_event_is_active"), "seasonal_event", ["is_active"], unique=False
    )
    op.create_index(
        "ix_seasonal_event_sku_multipliers_gin",
        "seasonal_event",
        ["sku_multipliers"],
        unique=False,
        postgresql_using="gin",
    )

    # Create model_weights table
    op.create_table(
        "model_weights",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("prophet", sa.Float(), nullable=False),
        sa.Column("lstm", sa.Float(), nullable=False),
        sa.Column("exponential_smoothing", sa.Float(), nullable=False),
        sa.Column("arima", sa.Float(), nullable=False),
        sa.Column("overall_mape", sa.Float(), nullable=True),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "prophet >= 0 AND lstm >= 0 AND exponential_smoothing >= 0 AND arima >= 0",
            name="ck_model_weights_non_negative",
        ),
        sa.CheckConstraint(
            "overall_mape IS NULL OR overall_mape >= 0",
            name="ck_model_weights_mape_non_negative",
        ),
    )
    op.create_index(op.f("ix_model_weights_sku"), "model_weights", ["sku"], unique=True)

    # Create forecast_accuracy table
    op.create_table(
        "forecast_accuracy",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("forecast_date", sa.Date(), nullable=False),
        sa.Column("model", sa.String(length=30), nullable=False),
        sa.Column("predicted_units", sa.Float(), nullable=False),
        sa.Column("actual_units", sa.Float(), nullable=False),
        sa.Column("percentage_error", sa.Float(), nullable=False),
        sa.Column("within_tolerance", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku", "forecast_date", "model", name="uq_forecast_accuracy_key"),
        sa.CheckConstraint(
            "predicted_units >= 0 AND actual_units >= 0 AND percentage_error >= 0",
            name="ck_forecast_accuracy_non_negative",
        ),
    )
    op.create_index(op.f("ix_forecast_accuracy_sku"), "forecast_accuracy", ["sku"], unique=False)
    op.create_index(
        op.f("ix_forecast_accuracy_forecast_date"),
        "forecast_accuracy",
        ["forecast_date"],
        unique=False,
    )
    op.create_index(
        "ix_forecast_accuracy_sku_date",
        "forecast_accuracy",
        ["sku", "forecast_date"],
        unique=False,
    )


def downgrade() -> None:
    """Revert migration - drop the planning tables."""
    op.drop_index("ix_forecast_accuracy_sku_date", table_name="forecast_accuracy")
    op.drop_index(op.f("ix_forecast_accuracy_forecast_date"), table_name="forecast_accuracy")
    op.drop_index(op.f("ix_forecast_accuracy_sku"), table_name="forecast_accuracy")
    op.drop_table("forecast_accuracy")

    op.drop_index(op.f("ix_model_weights_sku"), table_name="model_weights")
    op.drop_table("model_weights")

    op.drop_index("ix_seasonal_event_sku_multipliers_gin", table_name="seasonal_event")
    op.drop_index(op.f("ix_seasonal_event_is_active"), table_name="seasonal_event")
    op.drop_index(op.f("ix_seasonal_event_name"), table_name="seasonal_event")
    op.drop_table("seasonal_event")
