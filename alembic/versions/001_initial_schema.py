"""Initial schema: users, social graph, Q&A, notifications, workshops, rewards.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(32) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            email VARCHAR(320) NOT NULL UNIQUE,
            password_hash VARCHAR(256) NOT NULL,
            engagement_xp INTEGER NOT NULL DEFAULT 0,
            role VARCHAR(32),
            profile JSON NOT NULL DEFAULT '{}',
            has_completed_onboarding BOOLEAN NOT NULL DEFAULT false,
            onboarding_completed_at TIMESTAMPTZ,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            deleted_at TIMESTAMPTZ,
            workshops_created INTEGER NOT NULL DEFAULT 0,
            workshops_completed INTEGER NOT NULL DEFAULT 0,
            last_login TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_role ON users(role)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS follows (
            id VARCHAR(32) PRIMARY KEY,
            follower_id VARCHAR(32) NOT NULL REFERENCES users(id),
            following_id VARCHAR(32) NOT NULL REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_follows_pair UNIQUE (follower_id, following_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_follows_follower_id ON follows(follower_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_follows_following_id ON follows(following_id)")

    # --- Q&A ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS questions (
            id VARCHAR(32) PRIMARY KEY,
            author_id VARCHAR(32) NOT NULL REFERENCES users(id),
            author_name VARCHAR(128) NOT NULL,
            title VARCHAR(256) NOT NULL,
            content TEXT NOT NULL,
            tags JSON NOT NULL DEFAULT '[]',
            mentions JSON NOT NULL DEFAULT '[]',
            reactions JSON NOT NULL DEFAULT '[]',
            answers_count INTEGER NOT NULL DEFAULT 0,
            views_count INTEGER NOT NULL DEFAULT 0,
            is_resolved BOOLEAN NOT NULL DEFAULT false,
            accepted_answer_id VARCHAR(32),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_questions_author_id ON questions(author_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_questions_created_at ON questions(created_at)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS answers (
            id VARCHAR(32) PRIMARY KEY,
            question_id VARCHAR(32) NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
            author_id VARCHAR(32) NOT NULL REFERENCES users(id),
            author_name VARCHAR(128) NOT NULL,
            content TEXT NOT NULL,
            mentions JSON NOT NULL DEFAULT '[]',
            reactions JSON NOT NULL DEFAULT '[]',
            is_accepted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_answers_question_id ON answers(question_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_answers_author_id ON answers(author_id)")

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id VARCHAR(32) PRIMARY KEY,
            user_id VARCHAR(32) NOT NULL REFERENCES users(id),
            type VARCHAR(32) NOT NULL,
            from_user_id VARCHAR(32),
            from_user_name VARCHAR(128) NOT NULL DEFAULT 'System',
            target_id VARCHAR(32),
            target_type VARCHAR(32),
            message TEXT NOT NULL,
            metadata JSON NOT NULL DEFAULT '{}',
            read BOOLEAN NOT NULL DEFAULT false,
            read_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_user_created ON notifications(user_id, created_at)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_type ON notifications(type)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_target_id ON notifications(target_id)")

    # --- Workshops ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS workshops (
            id VARCHAR(32) PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(64) NOT NULL DEFAULT 'other',
            difficulty VARCHAR(32) NOT NULL DEFAULT 'beginner',
            tags JSON NOT NULL DEFAULT '[]',
            requirements JSON NOT NULL DEFAULT '[]',
            scheduled_date TIMESTAMPTZ NOT NULL,
            duration_minutes INTEGER NOT NULL DEFAULT 60,
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            max_participants INTEGER NOT NULL CHECK (max_participants >= 1),
            enrolled_count INTEGER NOT NULL DEFAULT 0 CHECK (enrolled_count >= 0),
            completed_count INTEGER NOT NULL DEFAULT 0,
            status VARCHAR(16) NOT NULL DEFAULT 'draft',
            allow_waitlist BOOLEAN NOT NULL DEFAULT true,
            auto_generate_certificate BOOLEAN NOT NULL DEFAULT true,
            meeting_type VARCHAR(32),
            meeting_link TEXT,
            creator_id VARCHAR(32) NOT NULL REFERENCES users(id),
            creator_name VARCHAR(128) NOT NULL,
            cancellation_reason TEXT,
            published_at TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshops_scheduled_date ON workshops(scheduled_date)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshops_status ON workshops(status)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshops_creator_id ON workshops(creator_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS workshop_enrollments (
            id VARCHAR(32) PRIMARY KEY,
            workshop_id VARCHAR(32) NOT NULL REFERENCES workshops(id),
            user_id VARCHAR(32) NOT NULL REFERENCES users(id),
            status VARCHAR(16) NOT NULL,
            enrolled_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            previous_status VARCHAR(16),
            re_enrolled_at TIMESTAMPTZ,
            feedback JSON,
            certificate_issued BOOLEAN NOT NULL DEFAULT false,
            certificate_id VARCHAR(32),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_enrollment_workshop_user UNIQUE (workshop_id, user_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshop_enrollments_workshop_id ON workshop_enrollments(workshop_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshop_enrollments_user_id ON workshop_enrollments(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS workshop_certificates (
            id VARCHAR(32) PRIMARY KEY,
            workshop_id VARCHAR(32) NOT NULL REFERENCES workshops(id),
            user_id VARCHAR(32) NOT NULL REFERENCES users(id),
            workshop_title VARCHAR(256) NOT NULL,
            user_name VARCHAR(128) NOT NULL,
            creator_name VARCHAR(128),
            verification_code VARCHAR(48) NOT NULL UNIQUE,
            certificate_url TEXT NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL,
            issued_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshop_certificates_workshop_id ON workshop_certificates(workshop_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_workshop_certificates_user_id ON workshop_certificates(user_id)")

    # --- Rewards ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            id VARCHAR(32) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            type VARCHAR(32) NOT NULL,
            category VARCHAR(32) NOT NULL,
            cost INTEGER NOT NULL CHECK (cost > 0),
            stock INTEGER CHECK (stock >= 0),
            is_active BOOLEAN NOT NULL DEFAULT true,
            image_url TEXT,
            created_by VARCHAR(32),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_reward_tokens (
            id VARCHAR(32) PRIMARY KEY,
            user_id VARCHAR(32) NOT NULL REFERENCES users(id),
            level INTEGER NOT NULL,
            xp_when_earned INTEGER NOT NULL,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            is_used BOOLEAN NOT NULL DEFAULT false,
            used_at TIMESTAMPTZ,
            used_for_reward_id VARCHAR(32),
            claim_id VARCHAR(32),
            CONSTRAINT uq_reward_token_user_level UNIQUE (user_id, level)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_reward_tokens_user_id ON user_reward_tokens(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_reward_claims (
            id VARCHAR(32) PRIMARY KEY,
            user_id VARCHAR(32) NOT NULL REFERENCES users(id),
            reward_id VARCHAR(32) NOT NULL REFERENCES rewards(id),
            tokens_claimed INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            level_when_claimed INTEGER NOT NULL,
            xp_when_claimed INTEGER NOT NULL,
            delivery_info JSON,
            admin_notes TEXT,
            claimed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_reward_claims_user_id ON user_reward_claims(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_reward_claims_reward_id ON user_reward_claims(reward_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_reward_claims_status ON user_reward_claims(status)")


def downgrade() -> None:
    for table in (
        "user_reward_claims",
        "user_reward_tokens",
        "rewards",
        "workshop_certificates",
        "workshop_enrollments",
        "workshops",
        "notifications",
        "answers",
        "questions",
        "follows",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table}")
