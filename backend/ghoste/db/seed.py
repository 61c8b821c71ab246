"""Idempotent seed data for the credit cost table."""

from sqlalchemy import select

from ghoste.db.base import get_session_factory
from ghoste.db.models.credit_cost import CreditCost

CREDIT_COSTS = [
    {"feature_key": "listening_party_create", "credit_cost": 500, "description": "Host a live listening party"},
    {"feature_key": "ai_manager_prompt", "credit_cost": 100, "description": "Ask the AI manager a question"},
    {"feature_key": "ai_cover_art_generate", "credit_cost": 800, "description": "Generate cover art"},
    {"feature_key": "ai_lyric_generation", "credit_cost": 400, "description": "Generate lyric drafts"},
    {"feature_key": "ai_recommendations", "credit_cost": 1500, "description": "Strategic AI recommendations"},
    {"feature_key": "meta_ad_campaign", "credit_cost": 3000, "description": "Launch a Meta ad campaign"},
    {"feature_key": "dynamic_ad_engine", "credit_cost": 2000, "description": "Dynamic ad creative engine"},
    {"feature_key": "viral_lead_setup", "credit_cost": 2000, "description": "Viral lead funnel setup"},
    {"feature_key": "email_campaign", "credit_cost": 100, "description": "Send an email campaign"},
    {"feature_key": "split_negotiation", "credit_cost": 500, "description": "Start a split-sheet negotiation"},
    {"feature_key": "studio_video_render", "credit_cost": 1500, "description": "Render a studio video"},
    {"feature_key": "studio_image_render", "credit_cost": 500, "description": "Render a studio image"},
    {"feature_key": "studio_audio_render", "credit_cost": 800, "description": "Render studio audio"},
    {"feature_key": "video_caption", "credit_cost": 300, "description": "Caption a video"},
    {"feature_key": "smart_link_create", "credit_cost": 100, "description": "Create a smart link"},
    {"feature_key": "presave_link", "credit_cost": 100, "description": "Create a pre-save link"},
    {"feature_key": "email_capture_link", "credit_cost": 50, "description": "Create an email capture link"},
]


async def seed_credit_costs() -> None:
    """Insert default credit costs for feature keys that have none yet.

    Existing rows are left alone so prices edited in the database survive
    restarts.
    """
    factory = get_session_factory()

    async with factory() as session:
        result = await session.execute(select(CreditCost.feature_key))
        existing = set(result.scalars().all())

        for cost_data in CREDIT_COSTS:
            if cost_data["feature_key"] not in existing:
                session.add(CreditCost(**cost_data))

        await session.commit()
