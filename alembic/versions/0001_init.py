"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _money(name, nullable=False, default="0"):
    kwargs = {"server_default": default} if default is not None else {}
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kwargs)


def _flag(name, default):
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true() if default else sa.false())


def upgrade():
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="admin"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("phone_number", sa.String(length=20), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("referral_code", sa.String(length=8), nullable=False, unique=True),
        _flag("is_email_verified", False),
        _flag("is_phone_verified", False),
        _flag("is_active", True),
        _flag("is_vip", False),
        sa.Column("vip_start_date", sa.Date(), nullable=True),
        sa.Column("vip_end_date", sa.Date(), nullable=True),
        sa.Column("device_token", sa.String(length=500), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_phone_number", "users", ["phone_number"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("profile_picture", sa.String(length=500), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("anniversary_date", sa.Date(), nullable=True),
        sa.Column("spouse_birth_date", sa.Date(), nullable=True),
        sa.Column("address_building", sa.String(length=200), nullable=True),
        sa.Column("address_street", sa.String(length=200), nullable=True),
        sa.Column("address_city", sa.String(length=100), nullable=True),
        sa.Column("address_state", sa.String(length=100), nullable=True),
        sa.Column("address_pincode", sa.String(length=20), nullable=True),
        sa.Column("profile_completion_percentage", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "user_wallets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        _money("available_cashback"),
        _money("total_cashback_earned"),
        _money("total_cashback_redeemed"),
        _money("total_coupon_redeemed"),
    )

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("referrer_user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("referred_user_id", sa.Integer(), nullable=True, index=True),
        sa.Column("referral_status", sa.String(length=30), nullable=False, server_default="link_sent"),
        _money("reward_earned"),
        sa.Column("referred_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signup_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_transaction_date", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("name", sa.String(length=100), nullable=False),
        _flag("is_active", True),
    )

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False, index=True),
        sa.Column("sub_category", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, index=True),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("logo", sa.String(length=500), nullable=True),
        sa.Column("rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("normal_discount_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("vip_discount_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("commission_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        _money("minimum_order_amount"),
        sa.Column("upi_id", sa.String(length=100), nullable=True),
        sa.Column("google_business_url", sa.String(length=500), nullable=True),
        sa.Column("contract_start_date", sa.Date(), nullable=True),
        sa.Column("contract_expiry_date", sa.Date(), nullable=True),
        _flag("is_premium", False),
        _flag("is_active", True),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("transaction_number", sa.String(length=50), nullable=False, unique=True),
        sa.Column("store_id", sa.Integer(), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("coupon_id", sa.Integer(), nullable=True, index=True),
        _money("bill_amount", default=None),
        _money("vendor_discount"),
        _money("coupon_discount"),
        _money("cashback_used"),
        _money("final_amount", default=None),
        _money("cashback_earned"),
        sa.Column("payment_method", sa.String(length=30), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending", index=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("error_msg", sa.Text(), nullable=True),
    )

    op.create_table(
        "settlements",
        sa.Column("settlement_id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("transaction_id", sa.Integer(), nullable=True, index=True),
        sa.Column("store_id", sa.Integer(), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        _money("bill_amount", default=None),
        _money("final_amount"),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=False),
        _money("commission_amount"),
        _money("settlement_amount", default=None),
        _money("settled_amount"),
        _money("pending_amount"),
        _money("extra_paid_amount"),
        _money("tax_amount"),
        _money("processing_fee"),
        _money("net_settlement_amount"),
        sa.Column("settlement_status", sa.String(length=20), nullable=False, server_default="pending", index=True),
        sa.Column("payment_method", sa.String(length=30), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("bank_account", sa.String(length=50), nullable=True),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=True),
        sa.Column("settlement_date", sa.Date(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        _flag("is_active", True),
    )

    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("store_id", sa.Integer(), nullable=True, index=True),
        _money("discount_amount", nullable=True, default=None),
        sa.Column("discount_percentage", sa.Numeric(5, 2), nullable=True),
        _money("min_order_amount"),
        _money("max_discount", nullable=True, default=None),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        _flag("is_active", True),
    )

    op.create_table(
        "user_coupons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("coupon_id", sa.Integer(), nullable=False, index=True),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        _flag("is_used", False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "reward_types",
        sa.Column("reward_id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("reward_name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("reward_type", sa.String(length=50), nullable=False, index=True),
        _money("normal_users_reward_value", default=None),
        _money("vip_users_reward_value", nullable=True, default=None),
        sa.Column("description", sa.Text(), nullable=True),
        _flag("is_active", True),
    )

    op.create_table(
        "reward_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("transaction_id", sa.Integer(), nullable=True, index=True),
        sa.Column("store_id", sa.Integer(), nullable=True, index=True),
        sa.Column("reward_type", sa.String(length=50), nullable=False, index=True),
        _money("amount", default=None),
        sa.Column("credit_debit", sa.String(length=10), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "survey_forms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reward_points", sa.Numeric(10, 2), nullable=False, server_default="0"),
        _flag("is_active", True),
    )

    op.create_table(
        "survey_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("survey_form_id", sa.Integer(), nullable=False, index=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(length=30), nullable=False, server_default="text"),
        sa.Column("options", sa.JSON(), nullable=True),
        _flag("is_required", False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("survey_form_id", sa.Integer(), nullable=False, index=True),
        sa.Column("question_id", sa.Integer(), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("answer", sa.Text(), nullable=True),
    )

    op.create_table(
        "faqs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False, index=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _flag("is_active", True),
    )

    op.create_table(
        "terms_conditions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _flag("is_active", True),
    )

    op.create_table(
        "app_guidance_videos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("video_link", sa.String(length=500), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
        _flag("is_active", True),
    )

    op.create_table(
        "stores_sequence",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("store_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("sequence_no", sa.Integer(), nullable=False, server_default="0", index=True),
        _flag("is_active", True),
    )

    op.create_table(
        "daily_reward_campaigns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("campaign_type", sa.String(length=20), nullable=False, index=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("repeat_interval", sa.String(length=20), nullable=False),
        sa.Column("custom_interval_days", sa.Integer(), nullable=True),
        sa.Column("max_attempts_per_interval", sa.Integer(), nullable=False),
        _flag("is_active", True),
    )

    op.create_table(
        "spin_wheel_rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        *_timestamps(),
        sa.Column("campaign_id", sa.Integer(), nullable=False, index=True),
        sa.Column("reward_type", sa.String(length=30), nullable=False),
        _money("reward_value", nullable=True, default=None),
        sa.Column("coupon_id", sa.Integer(), nullable=True),
        sa.Column("probability_weight", sa.Integer(), nullable=False),
        sa.Column("display_text", sa.String(length=100), nullable=False),
        sa.Column("display_color", sa.String(length=20), nullable=False, server_default="#3b82f6"),
        _flag("is_active", True),
    )

    op.create_table(
        "user_daily_spins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.Integer(), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("reward_id", sa.Integer(), nullable=True),
        sa.Column("spun_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    for table in (
        "admins",
        "users",
        "user_profiles",
        "user_wallets",
        "referrals",
        "categories",
        "stores",
        "transactions",
        "settlements",
        "coupons",
        "user_coupons",
        "reward_types",
        "reward_history",
        "survey_forms",
        "survey_questions",
        "survey_responses",
        "faqs",
        "terms_conditions",
        "app_guidance_videos",
        "stores_sequence",
        "daily_reward_campaigns",
        "spin_wheel_rewards",
    ):
        op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def downgrade():
    for table in (
        "user_daily_spins",
        "spin_wheel_rewards",
        "daily_reward_campaigns",
        "stores_sequence",
        "app_guidance_videos",
        "terms_conditions",
        "faqs",
        "survey_responses",
        "survey_questions",
        "survey_forms",
        "reward_history",
        "reward_types",
        "user_coupons",
        "coupons",
        "settlements",
        "transactions",
        "stores",
        "categories",
        "referrals",
        "user_wallets",
        "user_profiles",
        "users",
        "admins",
    ):
        op.drop_table(table)
