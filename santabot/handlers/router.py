from aiogram import Router

from santabot.handlers.secret import router as secret_router
from santabot.handlers.common import router as common_router

router = Router()

router.include_router(secret_router)
router.include_router(common_router)  # ✅ LAST = fallback only
