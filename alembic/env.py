from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool
import os
from app.db.session import Base

# import models
from app.models.admin import Admin
from app.models.user import User
from app.models.user_profile import UserProfile
from app.models.user_wallet import UserWallet
from app.models.referral import Referral
from app.models.category import Category
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.settlement import Settlement
from app.models.coupon import Coupon
from app.models.user_coupon import UserCoupon
from app.models.reward_type import RewardType
from app.models.reward_history import RewardHistory
from app.models.survey_form import SurveyForm
from app.models.survey_question import SurveyQuestion
from app.models.survey_response import SurveyResponse
from app.models.faq import Faq
from app.models.terms_condition import TermsCondition
from app.models.guidance_video import GuidanceVideo
from app.models.store_sequence import StoreSequence
from app.models.daily_reward_campaign import DailyRewardCampaign
from app.models.spin_wheel_reward import SpinWheelReward
from app.models.user_daily_spin import UserDailySpin

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
target_metadata = Base.metadata

def get_url():
    return os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")

def run_migrations_offline():
    context.configure(url=get_url(), target_metadata=target_metadata, literal_binds=True, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    cfg = config.get_section(config.config_ini_section) or {}
    cfg["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
