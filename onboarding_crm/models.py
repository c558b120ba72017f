from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class TypeformApplication(Base):
    """Inbound form submission awaiting review"""

    __tablename__ = "typeform_applications"

    id = Column(Integer, primary_key=True, index=True)
    typeform_response_id = Column(String(255), unique=True, index=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    contact_preference = Column(String(100), nullable=True)
    business_description = Column(Text, nullable=True)
    annual_revenue = Column(String(100), nullable=True)
    revenue_trend = Column(String(100), nullable=True)
    main_challenge = Column(Text, nullable=True)
    why_join = Column(Text, nullable=True)
    has_team = Column(String(255), nullable=True)
    investment_readiness = Column(String(255), nullable=True)
    decision_timeline = Column(String(100), nullable=True)
    anything_else = Column(Text, nullable=True)
    referral_source = Column(String(255), nullable=True)
    raw_data = Column(JSON, nullable=True)
    status = Column(String(50), default="new", nullable=False)  # new, reviewed, approved, rejected
    # Lifecycle timestamps, each one doubles as an at-most-once guard for its side effect
    emailed_at = Column(DateTime, nullable=True)
    replied_at = Column(DateTime, nullable=True)
    call_booked_at = Column(DateTime, nullable=True)
    purchased_at = Column(DateTime, nullable=True)
    onboarding_started_at = Column(DateTime, nullable=True)
    onboarding_completed_at = Column(DateTime, nullable=True)
    whatsapp_joined_at = Column(DateTime, nullable=True)
    # Slack thread where this application is discussed
    slack_channel_id = Column(String(50), nullable=True)
    slack_thread_ts = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    notes = relationship(
        "ApplicationNote",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by=lambda: (ApplicationNote.created_at.desc(), ApplicationNote.id.desc()),
    )


class BusinessOwner(Base):
    """Converted / paying member"""

    __tablename__ = "business_owners"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    business_name = Column(String(255), nullable=True)
    business_overview = Column(Text, nullable=True)
    annual_revenue = Column(String(100), nullable=True)
    team_count = Column(String(100), nullable=True)
    traffic_sources = Column(Text, nullable=True)
    landing_pages = Column(Text, nullable=True)
    pain_point = Column(Text, nullable=True)
    massive_win = Column(Text, nullable=True)
    ai_skill_level = Column(Integer, nullable=True)  # 1-10
    bio = Column(Text, nullable=True)
    headshot_url = Column(String(500), nullable=True)
    whatsapp_number = Column(String(50), nullable=True)
    whatsapp_joined = Column(Boolean, default=False, nullable=False)
    whatsapp_joined_at = Column(DateTime, nullable=True)
    mailing_address = Column(JSON, nullable=True)
    apparel_sizes = Column(JSON, nullable=True)
    anything_else = Column(Text, nullable=True)
    source = Column(
        String(50), default="chat_onboarding", nullable=False
    )  # chat_onboarding, typeform, csv_import, manual
    onboarding_status = Column(
        String(50), default="pending", nullable=False
    )  # pending, in_progress, completed
    onboarding_progress = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    team_members = relationship(
        "TeamMember",
        back_populates="business_owner",
        cascade="all, delete-orphan",
        order_by=lambda: (TeamMember.created_at, TeamMember.id),
    )
    c_level_partners = relationship(
        "CLevelPartner",
        back_populates="business_owner",
        cascade="all, delete-orphan",
        order_by=lambda: (CLevelPartner.created_at, CLevelPartner.id),
    )
    onboarding_submissions = relationship(
        "OnboardingSubmission",
        back_populates="business_owner",
        order_by=lambda: (OnboardingSubmission.created_at.desc(), OnboardingSubmission.id.desc()),
    )


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    business_owner_id = Column(
        Integer, ForeignKey("business_owners.id", ondelete="CASCADE"), nullable=True, index=True
    )
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    copywriting_skill = Column(Integer, nullable=True)  # 1-10
    cro_skill = Column(Integer, nullable=True)  # 1-10
    ai_skill = Column(Integer, nullable=True)  # 1-10
    business_summary = Column(Text, nullable=True)
    responsibilities = Column(Text, nullable=True)
    source = Column(String(50), default="chat_onboarding", nullable=False)
    # Downstream sync bookkeeping, picked up by the cron runner
    sync_requested_at = Column(DateTime, nullable=True)
    sync_attempts = Column(Integer, default=0, nullable=False)
    last_sync_attempt_at = Column(DateTime, nullable=True)
    last_sync_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business_owner = relationship("BusinessOwner", back_populates="team_members")


class CLevelPartner(Base):
    __tablename__ = "c_level_partners"

    id = Column(Integer, primary_key=True, index=True)
    business_owner_id = Column(
        Integer, ForeignKey("business_owners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    source = Column(String(50), default="chat_onboarding", nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    business_owner = relationship("BusinessOwner", back_populates="c_level_partners")


class OnboardingSubmission(Base):
    """Saved state of one onboarding chat session"""

    __tablename__ = "onboarding_submissions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), unique=True, index=True, nullable=False)
    business_owner_id = Column(
        Integer, ForeignKey("business_owners.id", ondelete="SET NULL"), nullable=True, index=True
    )
    data = Column(JSON, nullable=True)  # {answers, teamMembers, cLevelPartners}
    progress_percentage = Column(Integer, default=0, nullable=False)
    last_question = Column(String(100), nullable=True)
    is_complete = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business_owner = relationship("BusinessOwner", back_populates="onboarding_submissions")


class ApplicationNote(Base):
    __tablename__ = "application_notes"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(
        Integer,
        ForeignKey("typeform_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    note_text = Column(Text, nullable=False)
    created_by = Column(String(255), default="admin", nullable=False)
    slack_synced = Column(Boolean, default=False, nullable=False)
    slack_message_ts = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    application = relationship("TypeformApplication", back_populates="notes")


class Cancellation(Base):
    __tablename__ = "cancellations"

    id = Column(Integer, primary_key=True, index=True)
    member_email = Column(String(255), index=True, nullable=True)
    member_name = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    source = Column(String(50), nullable=True)  # samcart, admin
    created_by = Column(String(255), nullable=True)
    # Provider event id; one cancellation per delivered event
    external_event_id = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class SamcartOrder(Base):
    __tablename__ = "samcart_orders"

    id = Column(Integer, primary_key=True, index=True)
    samcart_order_id = Column(String(255), unique=True, index=True, nullable=True)
    event_type = Column(String(50), default="order", nullable=False)
    email = Column(String(255), index=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    product_name = Column(String(500), nullable=True)
    product_id = Column(String(255), nullable=True)
    order_total = Column(Float, nullable=True)
    currency = Column(String(10), default="USD", nullable=False)
    status = Column(String(50), default="completed", nullable=False)  # completed, canceled
    raw_data = Column(JSON, nullable=True)
    # Purchase thread in Slack
    slack_channel_id = Column(String(50), nullable=True)
    slack_thread_ts = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), index=True, nullable=False)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ImportHistory(Base):
    __tablename__ = "import_history"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(500), nullable=True)
    import_type = Column(String(50), nullable=False)  # business_owners, team_members
    records_imported = Column(Integer, default=0, nullable=False)
    records_failed = Column(Integer, default=0, nullable=False)
    errors = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
