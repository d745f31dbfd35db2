"""
Text content for the video wizard: viral ideas, scene scripts and
bilingual YouTube metadata, generated with the Gemini text model.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from ..config.settings import Settings
from ..core.errors import AuthError, GenerationError, MalformedResponse, ValidationError
from ..core.retry import RetryPolicy
from ..providers.llm import GeminiTextProvider

CHANNEL_NAME = "sujathananammavlogs"

DEFAULT_VIRAL_IDEAS: List[Dict[str, str]] = [
    {
        "title": "🏡 Telugu Village Life That City People Will Never Understand! 😱",
        "hook": "Open with stunning village sunrise imagery",
        "theme": "Rural Telugu lifestyle nostalgia",
        "viralReason": "Nostalgia + urban vs rural contrast drives engagement",
        "musicMood": "folk",
        "audience": "Telugu diaspora, NRIs, youth",
        "format": "Short",
    },
    {
        "title": "🪔 Why Sankranti Is The GREATEST Festival Ever! ✨",
        "hook": "Colorful rangoli time-lapse opening",
        "theme": "Telugu festival celebration",
        "viralReason": "Cultural pride + visual spectacle",
        "musicMood": "upbeat",
        "audience": "Telugu community worldwide",
        "format": "Long",
    },
    {
        "title": "🌾 The Secret Behind Telugu Grandma's Cooking 🍲❤️",
        "hook": "Close-up of steaming traditional dish",
        "theme": "Traditional Telugu cuisine",
        "viralReason": "Food content + emotional grandmother narrative",
        "musicMood": "devotional",
        "audience": "Food lovers, Telugu families",
        "format": "Short",
    },
    {
        "title": "🎭 Ancient Telugu Art Forms That Are Disappearing Forever! 😢",
        "hook": "Dramatic reveal of traditional art",
        "theme": "Telugu cultural heritage preservation",
        "viralReason": "Urgency + cultural preservation appeal",
        "musicMood": "cinematic",
        "audience": "Culture enthusiasts, art lovers",
        "format": "Long",
    },
    {
        "title": "⛰️ 10 HIDDEN Places in Telugu States You MUST Visit! 🗺️",
        "hook": "Aerial view of breathtaking landscape",
        "theme": "Travel destinations in AP & Telangana",
        "viralReason": "Discovery content + beautiful visuals",
        "musicMood": "upbeat",
        "audience": "Travel enthusiasts, locals",
        "format": "Long",
    },
]

IDEAS_PROMPT = """You are a YouTube viral content strategist specializing in Indian/Telugu content.
Generate {count} viral video ideas for a YouTube channel focused on "{niche}".

The channel "{channel}" creates visual content with AI-generated images/videos and background music.

For each idea, provide:
1. Title (catchy, emoji-included, viral-worthy)
2. Hook (first 3 seconds concept to grab attention)
3. Theme/Topic
4. Why it would go viral (psychology behind it)
5. Suggested music mood (folk/devotional/cinematic/upbeat)
6. Target audience
7. Best format (Short/Long)

Focus on trending topics in Telugu/Indian culture, emotional storytelling
(nostalgia, pride, spirituality), visual spectacles (festivals, nature,
mythology), relatable daily life content and cultural heritage.

Return as a JSON array with fields: title, hook, theme, viralReason, musicMood, audience, format.
Return ONLY the JSON array, no markdown formatting."""

SCRIPT_PROMPT = """You are a visual storytelling expert for YouTube. Create a {length} script.

Video idea: "{idea}"
Number of scenes/images: {image_count}
Duration per scene: ~{seconds_per_image} seconds
Channel: {channel} (Telugu/Indian culture)

For each scene, provide:
1. sceneNumber (1 to {image_count})
2. imagePrompt (detailed prompt for AI image generation, very specific about visual elements, colors, composition and lighting)
3. narration (optional text overlay or voiceover in English)
4. narrationTelugu (same in Telugu)
5. duration (in seconds)
6. transition (fade/zoom/slide)
7. musicIntensity (low/medium/high)

Also provide overallTitle, overallTitleTelugu, description, descriptionTelugu,
tags (array of 15-20 YouTube tags in English and Telugu), suggestedMusicMood
and thumbnailPrompt.

Return as JSON with fields: scenes (array), overallTitle, overallTitleTelugu, description, descriptionTelugu, tags, suggestedMusicMood, thumbnailPrompt.
Return ONLY the JSON, no markdown formatting."""

METADATA_PROMPT = """You are a YouTube SEO expert specializing in Telugu/Indian content.
Generate optimized YouTube metadata for a {kind}.

Topic: "{topic}"
Channel: {channel}
Language: {language}

Generate the following in BOTH English and Telugu:

1. title_en: Catchy YouTube title in English (with emojis, max 100 chars)
2. title_te: Same title translated to Telugu
3. description_en: Full YouTube description in English (300-500 words) with a two-line hook, hashtags and a call-to-action
4. description_te: Same description in Telugu
5. tags: Array of 20-30 tags mixing English and Telugu
6. category: Best YouTube category (e.g., "Entertainment", "People & Blogs")
7. thumbnail_text: Short text to overlay on thumbnail (max 5 words)
8. thumbnail_text_te: Same in Telugu

Return as JSON with fields: title_en, title_te, description_en, description_te, tags, category, thumbnail_text, thumbnail_text_te.
Return ONLY the JSON, no markdown formatting."""


def default_metadata(topic: str, format: str = "short") -> Dict[str, Any]:
    """Static metadata used when the model is unavailable."""
    is_short = format == "short"
    hashtag = "".join(topic.split())
    return {
        "title_en": f"{topic} | Amazing Visual Story ✨ #shorts",
        "title_te": f"{topic} | అద్భుతమైన విజువల్ స్టోరీ ✨",
        "description_en": (
            f"{topic}\n\nWelcome to Sujatha Nanamma Vlogs! 🙏\n\n"
            f"In this {'short' if is_short else 'video'}, we bring you an amazing visual experience about {topic}.\n\n"
            f"#{hashtag} #telugu #viral #trending\n\n"
            "👍 Like, 🔔 Subscribe & Share!\n\nFollow us for more amazing content!"
        ),
        "description_te": f"{topic}\n\nసుజాత నానమ్మ వ్లాగ్స్ కి స్వాగతం! 🙏\n\n#telugu #trending #viral",
        "tags": ["telugu", "viral", "trending", "shorts", topic.lower(), CHANNEL_NAME, "telugu vlogs"],
        "category": "Entertainment",
        "thumbnail_text": " ".join(topic.split()[:4]),
        "thumbnail_text_te": topic,
    }


class ContentGenerator:
    """Generates the wizard's text content, falling back to static content where allowed."""

    def __init__(
        self,
        settings: Settings,
        llm: Optional[GeminiTextProvider] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.settings = settings
        self.llm = llm or GeminiTextProvider(settings.GEMINI_API_KEY, model_name=settings.TEXT_MODEL)
        self.retry_policy = RetryPolicy(
            max_attempts=settings.MAX_ATTEMPTS,
            delays=settings.retry_delays(),
            sleep=sleep,
        )

    async def _generate_json(self, prompt: str) -> Any:
        return await self.retry_policy.run(
            lambda: self.llm.generate_json(prompt),
            provider_id=self.llm.provider_id,
            model_id=self.llm.model_name,
            attempt_log=[],
        )

    async def viral_ideas(self, niche: str = "telugu culture", count: int = 5) -> List[Dict[str, Any]]:
        """
        Suggest viral video ideas for a niche.

        Never fails: without a key or on any generation error the static
        idea list is returned.
        """
        if not self.llm.is_configured():
            return list(DEFAULT_VIRAL_IDEAS)

        prompt = IDEAS_PROMPT.format(count=count, niche=niche, channel=CHANNEL_NAME)
        try:
            ideas = await self._generate_json(prompt)
            if not isinstance(ideas, list):
                raise MalformedResponse("Expected a JSON array of ideas")
            return ideas
        except GenerationError as e:
            logger.warning(f"Viral ideas generation failed, using defaults: {e}")
            return list(DEFAULT_VIRAL_IDEAS)

    async def viral_script(self, idea: str, format: str = "short", image_count: int = 8) -> Dict[str, Any]:
        """
        Write a scene-by-scene script for an idea.

        Raises:
            ValidationError: Missing idea or non-positive image count
            AuthError: No Gemini key configured
            GenerationError: Generation failed
        """
        if not idea or not idea.strip():
            raise ValidationError("Idea is required", "EMPTY_IDEA")
        if image_count <= 0:
            raise ValidationError("imageCount must be positive", "INVALID_SCENE_COUNT")
        if not self.llm.is_configured():
            raise AuthError(
                "Gemini API key required for script generation",
                provider=self.llm.get_provider_name()
            )

        is_short = format == "short"
        total_duration = 60 if is_short else 180
        prompt = SCRIPT_PROMPT.format(
            length="Short (60 seconds)" if is_short else "regular video (2-3 minutes)",
            idea=idea,
            image_count=image_count,
            seconds_per_image=total_duration // image_count,
            channel=CHANNEL_NAME,
        )
        script = await self._generate_json(prompt)
        if not isinstance(script, dict):
            raise MalformedResponse(
                "Script generation returned a non-object JSON value",
                provider=self.llm.get_provider_name()
            )
        return script

    async def metadata(self, topic: str, format: str = "short", language: str = "both") -> Dict[str, Any]:
        """Bilingual YouTube metadata; static defaults on any failure."""
        if not topic or not topic.strip():
            raise ValidationError("Topic is required", "EMPTY_TOPIC")
        if not self.llm.is_configured():
            return default_metadata(topic, format)

        prompt = METADATA_PROMPT.format(
            kind="YouTube Short" if format == "short" else "regular YouTube video",
            topic=topic,
            channel=CHANNEL_NAME,
            language=language,
        )
        try:
            metadata = await self._generate_json(prompt)
            if not isinstance(metadata, dict):
                raise MalformedResponse("Expected a JSON object of metadata")
            return metadata
        except GenerationError as e:
            logger.warning(f"Metadata generation failed, using defaults: {e}")
            return default_metadata(topic, format)
