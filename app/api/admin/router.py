from fastapi import APIRouter
from app.api.admin import (
    auth,
    coupons,
    daily_rewards,
    dashboard,
    faqs,
    reward_history,
    rewards,
    settlements,
    stores,
    stores_sequence,
    surveys,
    terms,
    transactions,
    users,
    videos,
)

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(stores.router, prefix="/stores", tags=["Stores"])
router.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
router.include_router(settlements.router, prefix="/settlements", tags=["Settlements"])
router.include_router(coupons.router, prefix="/coupons", tags=["Coupons"])
router.include_router(rewards.router, prefix="/rewards", tags=["Rewards"])
router.include_router(reward_history.router, prefix="/reward-history", tags=["RewardHistory"])
router.include_router(surveys.router, prefix="/surveys", tags=["Surveys"])
router.include_router(faqs.router, prefix="/faqs", tags=["Faqs"])
router.include_router(terms.router, prefix="/terms", tags=["Terms"])
router.include_router(videos.router, prefix="/videos", tags=["Videos"])
router.include_router(stores_sequence.router, prefix="/stores-sequence", tags=["StoresSequence"])
router.include_router(daily_rewards.router, prefix="/daily-rewards", tags=["DailyRewards"])
