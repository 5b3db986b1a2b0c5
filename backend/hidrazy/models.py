from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, JSON, String, Text, UniqueConstraint
from .db import Base


def _uuid() -> str:
	return str(uuid.uuid4())


class User(Base):
	__tablename__ = "users"
	# Same id as the Supabase auth user (JWT sub)
	id = Column(String(36), primary_key=True, default=_uuid)
	email = Column(String(256), nullable=True)
	learning_goal = Column(String(64), nullable=True)
	current_level = Column(String(16), nullable=True)
	country = Column(String(128), nullable=True)
	assessment_completed = Column(Boolean, default=False, nullable=False)
	onboarding_completed = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Assessment(Base):
	__tablename__ = "assessments"
	id = Column(String(36), primary_key=True, default=_uuid)
	user_id = Column(String(36), index=True, nullable=False)
	session_id = Column(String(64), nullable=False)
	status = Column(String(16), default="in_progress", nullable=False)  # in_progress | completed
	# {type, responses: [{question_id, user_response, analysis, timestamp}], current_question, ...}
	assessment_data_json = Column(JSON, nullable=False, default=dict)
	questions_answered = Column(Integer, default=0, nullable=False)
	final_level = Column(String(8), nullable=True)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Conversation(Base):
	__tablename__ = "conversations"
	id = Column(String(36), primary_key=True, default=_uuid)
	user_id = Column(String(36), index=True, nullable=False)
	conversation_type = Column(String(32), default="free-chat", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class ConversationHistory(Base):
	__tablename__ = "conversation_history"
	id = Column(String(36), primary_key=True, default=_uuid)
	conversation_id = Column(String(36), index=True, nullable=False)
	user_id = Column(String(36), index=True, nullable=False)
	message_type = Column(String(16), nullable=False)  # user | razia | system
	content = Column(Text, nullable=False)
	audio_url = Column(String(512), nullable=True)
	corrections_provided = Column(JSON, nullable=True)
	engagement_level = Column(Float, nullable=True)
	user_confidence_level = Column(Float, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LearningAnalytics(Base):
	__tablename__ = "learning_analytics"
	__table_args__ = (UniqueConstraint("user_id", "date", name="uq_learning_analytics_user_date"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(36), index=True, nullable=False)
	date = Column(Date, nullable=False)
	conversation_count = Column(Integer, default=0, nullable=False)
	session_count = Column(Integer, default=0, nullable=False)
	engagement_score = Column(Float, nullable=True)
	confidence_level = Column(Float, nullable=True)
	cultural_confidence_level = Column(Float, nullable=True)
	study_duration_minutes = Column(Integer, default=0, nullable=False)
	grammar_mistakes = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProgressTracking(Base):
	__tablename__ = "progress_tracking"
	user_id = Column(String(36), primary_key=True)
	overall_proficiency = Column(Float, default=0, nullable=False)
	last_assessment_date = Column(Date, nullable=True)
	next_assessment_due = Column(Date, nullable=True)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class LessonProgress(Base):
	__tablename__ = "lesson_progress"
	id = Column(String(36), primary_key=True, default=_uuid)
	user_id = Column(String(36), index=True, nullable=False)
	lesson_id = Column(String(64), nullable=True)
	competency = Column(String(128), nullable=True)
	score = Column(Integer, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FeatureUsage(Base):
	__tablename__ = "feature_usage"
	__table_args__ = (UniqueConstraint("user_id", "date", name="uq_feature_usage_user_date"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(36), index=True, nullable=False)
	date = Column(Date, nullable=False)
	conversations_count = Column(Integer, default=0, nullable=False)
	conversation_minutes = Column(Integer, default=0, nullable=False)
	advanced_analytics_views = Column(Integer, default=0, nullable=False)
	cultural_intelligence_uses = Column(Integer, default=0, nullable=False)
	business_mode_minutes = Column(Integer, default=0, nullable=False)
	ielts_practice_sessions = Column(Integer, default=0, nullable=False)
	offline_content_downloads = Column(Integer, default=0, nullable=False)
	features_used_today = Column(JSON, nullable=False, default=list)
	premium_features_attempted = Column(JSON, nullable=False, default=list)
	upgrade_prompts_shown = Column(Integer, default=0, nullable=False)
	subscription_tier = Column(String(32), default="free", nullable=False)
	daily_conversation_limit = Column(Integer, nullable=True)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Subscriber(Base):
	__tablename__ = "subscribers"
	user_id = Column(String(36), primary_key=True)
	subscribed = Column(Boolean, default=False, nullable=False)
	subscription_tier = Column(String(32), default="free", nullable=False)  # free | premium | business
	status = Column(String(32), nullable=True)
	subscription_start = Column(DateTime, nullable=True)
	subscription_end = Column(DateTime, nullable=True)
	stripe_subscription_id = Column(String(128), nullable=True)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
