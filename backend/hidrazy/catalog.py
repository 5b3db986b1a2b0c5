"""
Static product configuration.

Everything the handlers treat as fixed data (the stealth assessment script,
the feature unlock catalog, premium rules, Razia's teaching persona) lives
here as frozen models. ``load_catalog`` builds one ``Catalog`` at startup;
handlers receive it through the ``get_catalog`` dependency.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class _Frozen(BaseModel):
	model_config = ConfigDict(frozen=True)


class AssessmentQuestion(_Frozen):
	id: int
	question: str
	level: str
	hidden_assessment: str
	follow_up: str
	cultural_bridge: str


class FeatureCriteria(_Frozen):
	name: str
	category: str
	difficulty: str
	requirements: Tuple[str, ...]
	success_factors: Tuple[str, ...]
	# Placeholder figure shown to the LLM, not derived from any data
	historical_success: int = Field(ge=0, le=100)


class TierRule(_Frozen):
	allowed: bool
	# None = not metered, -1 = unlimited
	daily_limit: Optional[int] = None


class FeatureRule(_Frozen):
	feature_id: str
	free: TierRule
	premium: TierRule
	business: TierRule
	# Column on feature_usage counting this feature; None when not metered
	usage_field: Optional[str] = None

	def for_tier(self, tier: str) -> TierRule:
		return {"free": self.free, "premium": self.premium, "business": self.business}.get(tier, self.free)


class UpgradePrompt(_Frozen):
	feature_id: str
	title: str
	message: str
	benefits: Tuple[str, ...]
	cta: str


class ConversationLimit(_Frozen):
	tier: str
	daily_limit: int
	monthly_limit: int


class AdaptiveCharacteristics(_Frozen):
	level: str
	vocabulary: str
	pace: str
	encouragement_frequency: str
	arabic_support: bool
	complexity_level: int


class CorrectionStrategy(_Frozen):
	error_type: str
	approach: str
	acknowledgment: str
	correction: str
	explanation: str
	reinforcement: str


class ConversationContext(_Frozen):
	conversation_type: str
	focus: Tuple[str, ...]


class Catalog(_Frozen):
	razia_greeting: str
	assessment_questions: Tuple[AssessmentQuestion, ...]
	razia_encouragements: Tuple[str, ...]
	level_scores: Tuple[Tuple[str, int], ...]
	features: Tuple[FeatureCriteria, ...]
	feature_rules: Tuple[FeatureRule, ...]
	upgrade_prompts: Tuple[UpgradePrompt, ...]
	default_upgrade_prompt: UpgradePrompt
	upgrade_benefits: Tuple[Tuple[str, Tuple[str, ...]], ...]
	conversation_limits: Tuple[ConversationLimit, ...]
	adaptive_levels: Tuple[AdaptiveCharacteristics, ...]
	common_challenges: Tuple[str, ...]
	transfer_errors: Tuple[str, ...]
	cultural_references: Tuple[str, ...]
	correction_strategies: Tuple[CorrectionStrategy, ...]
	conversation_contexts: Tuple[ConversationContext, ...]

	def question(self, question_id: int) -> Optional[AssessmentQuestion]:
		for q in self.assessment_questions:
			if q.id == question_id:
				return q
		return None

	def feature(self, name: str) -> Optional[FeatureCriteria]:
		for f in self.features:
			if f.name == name:
				return f
		return None

	def rule(self, feature_id: str) -> Optional[FeatureRule]:
		for r in self.feature_rules:
			if r.feature_id == feature_id:
				return r
		return None

	def upgrade_prompt(self, feature_id: str) -> UpgradePrompt:
		for p in self.upgrade_prompts:
			if p.feature_id == feature_id:
				return p
		return self.default_upgrade_prompt

	def benefits(self, feature_id: str) -> List[str]:
		for fid, items in self.upgrade_benefits:
			if fid == feature_id:
				return list(items)
		return ["Access to premium features", "Enhanced learning experience"]

	def conversation_limit(self, tier: str) -> ConversationLimit:
		by_tier = {c.tier: c for c in self.conversation_limits}
		return by_tier.get(tier, by_tier["free"])

	def characteristics(self, level: str) -> AdaptiveCharacteristics:
		by_level = {c.level: c for c in self.adaptive_levels}
		return by_level.get((level or "").upper(), by_level["A1"])

	def context(self, conversation_type: Optional[str]) -> ConversationContext:
		by_type = {c.conversation_type: c for c in self.conversation_contexts}
		return by_type.get(conversation_type or "", by_type["free-chat"])

	def proficiency_score(self, level: str) -> int:
		return dict(self.level_scores).get((level or "").lower(), 40)


RAZIA_GREETING = """Marhaba! I'm Razia, and I'm absolutely thrilled to meet you! 😊

Think of me as your English conversation partner and cultural bridge friend. Before we start our learning adventure together, I'd love to just chat and get to know you better - no pressure, no tests, just a normal conversation between friends!

I'm curious about your story and how I can help you achieve your English goals. Ready to chat?"""

# Ordered easiest to hardest: A1-A2 comfort zone up to B2+ stretch
ASSESSMENT_QUESTIONS = (
	AssessmentQuestion(
		id=1,
		question="So, tell me about yourself! What's your name and where are you from?",
		level="A1-A2",
		hidden_assessment="Basic vocabulary, present tense, pronunciation, confidence",
		follow_up="That's wonderful! What do you love most about your region?",
		cultural_bridge="I'd love to learn more about your area!",
	),
	AssessmentQuestion(
		id=2,
		question="What do you enjoy doing in your free time? Any hobbies or interests?",
		level="A1-A2",
		hidden_assessment="Hobby vocabulary, present simple usage, sentence complexity",
		follow_up="How did you get interested in that?",
		cultural_bridge="Are there any traditional activities you enjoy too?",
	),
	AssessmentQuestion(
		id=3,
		question="Can you describe a typical day for you? What time do you usually wake up?",
		level="A2",
		hidden_assessment="Daily routine vocabulary, time expressions, sequential language",
		follow_up="How does your routine change during different seasons?",
		cultural_bridge="How does your routine change during Ramadan?",
	),
	AssessmentQuestion(
		id=4,
		question="Tell me about a happy memory from this past year. What made it special?",
		level="A2-B1",
		hidden_assessment="Past tense accuracy, narrative ability, emotional vocabulary",
		follow_up="What made that moment so meaningful to you?",
		cultural_bridge="Was this related to any family traditions or celebrations?",
	),
	AssessmentQuestion(
		id=5,
		question="What's something about Arab culture that you think English speakers should understand better?",
		level="B1",
		hidden_assessment="Cultural vocabulary, explanation skills, complex structures",
		follow_up="How would you help someone understand that concept?",
		cultural_bridge="This is exactly what I love helping with - cultural bridges!",
	),
	AssessmentQuestion(
		id=6,
		question="If you could visit any English-speaking country, where would you go and why?",
		level="B1",
		hidden_assessment="Conditional structures, reasoning ability, future planning",
		follow_up="What would you want to experience there?",
		cultural_bridge="How do you think it would be different from home?",
	),
	AssessmentQuestion(
		id=7,
		question="What do you think about social media's impact on how people communicate today?",
		level="B1-B2",
		hidden_assessment="Opinion expression, abstract thinking, complex vocabulary",
		follow_up="Have you noticed any changes in your own communication?",
		cultural_bridge="Are there differences in how it's used in different cultures?",
	),
	AssessmentQuestion(
		id=8,
		question="Describe a challenge in your community and how you think it could be addressed.",
		level="B2",
		hidden_assessment="Problem-solution language, advanced vocabulary, analytical thinking",
		follow_up="What role could individuals play in solving this?",
		cultural_bridge="Have you seen successful solutions in other places?",
	),
	AssessmentQuestion(
		id=9,
		question="How has learning or using English changed your perspective on anything?",
		level="B2",
		hidden_assessment="Metacognitive awareness, present perfect, abstract reflection",
		follow_up="What has surprised you most about this experience?",
		cultural_bridge="How do you balance maintaining your identity while learning English?",
	),
	AssessmentQuestion(
		id=10,
		question="Can you explain something from your field of work or study to someone unfamiliar with it?",
		level="B2+",
		hidden_assessment="Technical vocabulary, explanation skills, register awareness",
		follow_up="What's the most challenging part about explaining your field?",
		cultural_bridge="How does your field differ across different countries?",
	),
	AssessmentQuestion(
		id=11,
		question="What role do you think technology should play in preserving cultural traditions?",
		level="B2+",
		hidden_assessment="Advanced structures, hypothetical thinking, cultural intelligence",
		follow_up="Can you think of any examples where this has worked well?",
		cultural_bridge="How has technology affected Arab cultural traditions?",
	),
	AssessmentQuestion(
		id=12,
		question="If you were building bridges between Arabic and English-speaking cultures, what would be most important to focus on?",
		level="B2+",
		hidden_assessment="Sophisticated vocabulary, cultural competence, visionary thinking",
		follow_up="What misconceptions would you most want to address?",
		cultural_bridge="This is exactly what we'll work on together!",
	),
)

RAZIA_ENCOURAGEMENTS = (
	"That's wonderful! I can see you have a great connection to your culture.",
	"Mashallah! Your English is really coming along nicely.",
	"I love hearing about your experiences - it helps me understand how to help you better.",
	"That's exactly the kind of sharing that builds strong cultural bridges!",
	"Your perspective is so valuable - this is what makes conversations interesting!",
)

LEVEL_SCORES = (("a1", 20), ("a2", 40), ("b1", 60), ("b2", 80), ("c1", 90), ("c2", 95))

FEATURES = (
	FeatureCriteria(
		name="Role-Play Scenarios",
		category="conversation_practice",
		difficulty="intermediate",
		requirements=(
			"Conversational confidence ≥ 70%",
			"Grammar accuracy ≥ 65%",
			"Cultural comfort ≥ 75%",
			"At least 10 successful conversations with Razia",
		),
		success_factors=(
			"Enjoys conversation practice over grammar drills",
			"Shows curiosity about cultural differences",
			"Demonstrates resilience when corrected",
		),
		historical_success=85,
	),
	FeatureCriteria(
		name="Business English",
		category="professional",
		difficulty="advanced",
		requirements=(
			"Minimum B1 level overall competency",
			"Professional vocabulary comfort ≥ 60%",
			"Formal register awareness",
			"Cross-cultural business sensitivity",
		),
		success_factors=(
			"Mentioned career/business goals",
			"Comfortable with formal topics",
			"Interest in professional development",
		),
		historical_success=78,
	),
	FeatureCriteria(
		name="IELTS Preparation",
		category="academic",
		difficulty="advanced",
		requirements=(
			"Minimum A2+ with B1 potential",
			"Academic English comfort",
			"Test preparation mindset",
			"Specific IELTS goals and timeline",
		),
		success_factors=(
			"University/immigration goals requiring IELTS",
			"Analytical thinking in conversations",
			"Study discipline and goal orientation",
		),
		historical_success=82,
	),
	FeatureCriteria(
		name="Advanced Analytics",
		category="progress_tracking",
		difficulty="intermediate",
		requirements=(
			"At least 2 weeks of active learning",
			"Regular session attendance",
			"Interest in detailed progress tracking",
		),
		success_factors=(
			"Goal-oriented learner",
			"Enjoys data and metrics",
			"Self-reflective about progress",
		),
		historical_success=90,
	),
	FeatureCriteria(
		name="Offline Learning",
		category="accessibility",
		difficulty="beginner",
		requirements=(
			"Basic app familiarity",
			"Need for offline access",
			"Mobile device storage available",
		),
		success_factors=(
			"Limited internet connectivity",
			"Travel frequently",
			"Prefers downloaded content",
		),
		historical_success=95,
	),
)

_PREMIUM_ONLY = dict(free=TierRule(allowed=False), premium=TierRule(allowed=True), business=TierRule(allowed=True))

FEATURE_RULES = (
	FeatureRule(
		feature_id="unlimited_conversations",
		free=TierRule(allowed=False, daily_limit=5),
		premium=TierRule(allowed=True, daily_limit=-1),
		business=TierRule(allowed=True, daily_limit=-1),
		usage_field="conversations_count",
	),
	FeatureRule(feature_id="advanced_analytics", usage_field="advanced_analytics_views", **_PREMIUM_ONLY),
	FeatureRule(feature_id="cultural_intelligence", usage_field="cultural_intelligence_uses", **_PREMIUM_ONLY),
	FeatureRule(feature_id="business_mode", usage_field="business_mode_minutes", **_PREMIUM_ONLY),
	FeatureRule(feature_id="ielts_practice", usage_field="ielts_practice_sessions", **_PREMIUM_ONLY),
	FeatureRule(feature_id="offline_learning", usage_field="offline_content_downloads", **_PREMIUM_ONLY),
	FeatureRule(feature_id="personalized_curriculum", **_PREMIUM_ONLY),
)

UPGRADE_PROMPTS = (
	UpgradePrompt(
		feature_id="unlimited_conversations",
		title="Unlock Unlimited Conversations",
		message="Continue your English learning journey without daily limits",
		benefits=("Unlimited daily conversations", "Extended practice sessions", "No interruptions"),
		cta="Upgrade to Premium",
	),
	UpgradePrompt(
		feature_id="advanced_analytics",
		title="Discover Your Learning Insights",
		message="Get detailed analytics to optimize your English learning",
		benefits=("Learning pattern analysis", "Performance predictions", "Personalized recommendations"),
		cta="See Analytics Now",
	),
	UpgradePrompt(
		feature_id="cultural_intelligence",
		title="Master Cultural Communication",
		message="Bridge Arabic and English cultures with AI-powered insights",
		benefits=("Cultural adaptation guidance", "Context-aware corrections", "Professional communication"),
		cta="Unlock Cultural AI",
	),
	UpgradePrompt(
		feature_id="business_mode",
		title="Excel in Business English",
		message="Professional communication skills for career advancement",
		benefits=("Business vocabulary", "Professional scenarios", "Industry-specific training"),
		cta="Go Professional",
	),
	UpgradePrompt(
		feature_id="ielts_practice",
		title="Achieve Your IELTS Goals",
		message="Comprehensive IELTS preparation with AI feedback",
		benefits=("Practice tests", "Band score predictions", "Personalized study plans"),
		cta="Start IELTS Prep",
	),
	UpgradePrompt(
		feature_id="offline_learning",
		title="Learn Anywhere, Anytime",
		message="Download lessons for offline study",
		benefits=("Offline conversations", "Cached content", "Study without internet"),
		cta="Enable Offline Mode",
	),
)

DEFAULT_UPGRADE_PROMPT = UpgradePrompt(
	feature_id="*",
	title="Unlock Premium Features",
	message="Get full access to advanced learning tools",
	benefits=("Advanced features", "Better learning experience", "Faster progress"),
	cta="Upgrade Now",
)

UPGRADE_BENEFITS = (
	("unlimited_conversations", (
		"Unlimited daily conversations with Razia",
		"Extended practice sessions",
		"No waiting periods",
		"Priority AI response times",
	)),
	("advanced_analytics", (
		"Detailed learning pattern analysis",
		"Performance trend predictions",
		"Personalized improvement recommendations",
		"Learning efficiency optimization",
	)),
	("cultural_intelligence", (
		"Arabic-English cultural bridge insights",
		"Context-aware communication guidance",
		"Professional cultural adaptation",
		"Business etiquette training",
	)),
)

CONVERSATION_LIMITS = (
	ConversationLimit(tier="free", daily_limit=5, monthly_limit=150),
	ConversationLimit(tier="premium", daily_limit=-1, monthly_limit=-1),
	ConversationLimit(tier="business", daily_limit=-1, monthly_limit=-1),
)

ADAPTIVE_LEVELS = (
	AdaptiveCharacteristics(level="A1", vocabulary="simple", pace="very-slow", encouragement_frequency="high", arabic_support=True, complexity_level=1),
	AdaptiveCharacteristics(level="A2", vocabulary="simple", pace="slow", encouragement_frequency="high", arabic_support=True, complexity_level=2),
	AdaptiveCharacteristics(level="B1", vocabulary="intermediate", pace="slow", encouragement_frequency="medium", arabic_support=True, complexity_level=4),
	AdaptiveCharacteristics(level="B2", vocabulary="intermediate", pace="normal", encouragement_frequency="medium", arabic_support=False, complexity_level=6),
	AdaptiveCharacteristics(level="C1", vocabulary="advanced", pace="normal", encouragement_frequency="low", arabic_support=False, complexity_level=8),
	AdaptiveCharacteristics(level="C2", vocabulary="complex", pace="natural", encouragement_frequency="low", arabic_support=False, complexity_level=10),
)

COMMON_CHALLENGES = (
	"articles (a, an, the) - Arabic doesn't use articles the same way",
	"p/b pronunciation - /p/ sound doesn't exist in Arabic",
	"word order - Arabic is VSO, English is SVO",
	"verb tenses - different tense system between languages",
	"prepositions - different prepositional usage patterns",
)

TRANSFER_ERRORS = (
	'article_omission: "I go to school" → "I go to the school"',
	'p_sound_substitution: "pen" → "ben"',
	"word_order_transfer: VSO patterns in English",
	"tense_confusion: present/past tense mixing",
	"preposition_errors: direct translation of Arabic prepositions",
)

CULTURAL_REFERENCES = (
	"family_centrality: Family is the foundation of Arab society",
	"hospitality_tradition: Guests are sacred and must be honored",
	"religious_awareness: Islamic values influence daily interactions",
	"respect_hierarchy: Age and wisdom are deeply respected",
	"community_focus: Collective well-being over individual achievement",
	"indirect_communication: Preserving dignity and avoiding confrontation",
)

CORRECTION_STRATEGIES = (
	CorrectionStrategy(
		error_type="article_missing",
		approach="positive-framing",
		acknowledgment="Excellent sentence structure!",
		correction='In English, we add "the" before school when we mean a specific school',
		explanation="Articles help us show whether we're talking about something specific or general",
		reinforcement='Try saying: "I go to the school" - perfect!',
	),
	CorrectionStrategy(
		error_type="p_pronunciation",
		approach="gentle-redirect",
		acknowledgment="I understand you perfectly!",
		correction="Let's practice the \"p\" sound - put your lips together and release with a little puff of air",
		explanation="The /p/ sound is made by stopping air with your lips, then releasing it quickly",
		reinforcement="Repeat after me: pen, park, happy - mashallah, much better!",
	),
	CorrectionStrategy(
		error_type="word_order",
		approach="explanation-first",
		acknowledgment="I can see you're thinking in Arabic word order!",
		correction='In English, we put the subject first: "The boy reads the book"',
		explanation="Arabic uses Verb-Subject-Object, but English uses Subject-Verb-Object",
		reinforcement="Try it: Subject (the boy) + Verb (reads) + Object (the book)",
	),
	CorrectionStrategy(
		error_type="tense_confusion",
		approach="positive-framing",
		acknowledgment="Good use of vocabulary!",
		correction='For something that happened yesterday, we use past tense: "I went"',
		explanation="English tenses show exactly when something happened",
		reinforcement="Practice: Today I go, yesterday I went, tomorrow I will go",
	),
)

CONVERSATION_CONTEXTS = (
	ConversationContext(conversation_type="lesson-practice", focus=(
		"Following lesson objectives and guided topics",
		"Reinforcing specific vocabulary and grammar points",
		"Providing structured practice opportunities",
		"Giving clear explanations and examples",
	)),
	ConversationContext(conversation_type="free-chat", focus=(
		"Natural, flowing dialogue",
		"Following the student's interests and topics",
		"Gentle guidance toward learning opportunities",
		"Building confidence through casual conversation",
	)),
	ConversationContext(conversation_type="role-play", focus=(
		"Staying in character while teaching",
		"Creating realistic conversation situations",
		"Providing practical language use examples",
		"Making scenarios relevant to student's life",
	)),
	ConversationContext(conversation_type="assessment", focus=(
		"Evaluating language skills naturally within conversation",
		"Noting strengths and areas for improvement",
		"Providing constructive feedback",
		"Measuring progress against learning goals",
	)),
	ConversationContext(conversation_type="cultural-bridge", focus=(
		"Comparing Arabic and English cultural contexts",
		"Explaining cultural nuances and expectations",
		"Helping navigate cultural differences",
		"Building cross-cultural understanding",
	)),
)


def _load_features(path: str) -> Tuple[FeatureCriteria, ...]:
	with Path(path).open(encoding="utf-8") as fh:
		raw = json.load(fh)
	if not isinstance(raw, list) or not raw:
		raise ValueError(f"{path} must contain a non-empty JSON array of features")
	return tuple(FeatureCriteria.model_validate(item) for item in raw)


def load_catalog(feature_catalog_path: Optional[str] = None, *, free_daily_conversation_limit: int = 5) -> Catalog:
	features = FEATURES
	if feature_catalog_path:
		features = _load_features(feature_catalog_path)
		logger.info("Loaded %d unlock features from %s", len(features), feature_catalog_path)
	limits = tuple(
		c.model_copy(update={"daily_limit": free_daily_conversation_limit}) if c.tier == "free" else c
		for c in CONVERSATION_LIMITS
	)
	rules = tuple(
		r.model_copy(update={"free": r.free.model_copy(update={"daily_limit": free_daily_conversation_limit})})
		if r.feature_id == "unlimited_conversations" else r
		for r in FEATURE_RULES
	)
	return Catalog(
		razia_greeting=RAZIA_GREETING,
		assessment_questions=ASSESSMENT_QUESTIONS,
		razia_encouragements=RAZIA_ENCOURAGEMENTS,
		level_scores=LEVEL_SCORES,
		features=features,
		feature_rules=rules,
		upgrade_prompts=UPGRADE_PROMPTS,
		default_upgrade_prompt=DEFAULT_UPGRADE_PROMPT,
		upgrade_benefits=UPGRADE_BENEFITS,
		conversation_limits=limits,
		adaptive_levels=ADAPTIVE_LEVELS,
		common_challenges=COMMON_CHALLENGES,
		transfer_errors=TRANSFER_ERRORS,
		cultural_references=CULTURAL_REFERENCES,
		correction_strategies=CORRECTION_STRATEGIES,
		conversation_contexts=CONVERSATION_CONTEXTS,
	)
