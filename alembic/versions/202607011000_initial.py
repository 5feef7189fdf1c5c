"""rotary years, service projects, speakers and photos

Revision ID: 202607011000
Revises:
Create Date: 2026-07-01 10:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202607011000"
down_revision = None
branch_labels = None
depends_on = None


AREA_OF_FOCUS = (
    "Peace",
    "Disease",
    "Water",
    "Maternal/Child",
    "Education",
    "Economy",
    "Environment",
)
PROJECT_STATUS = ("Idea", "Planning", "Approved", "Execution", "Completed", "Dropped")
PROJECT_TYPE = ("Global Grant", "Club", "Joint")
SPEAKER_STATUS = ("ideas", "approached", "agreed", "scheduled", "spoken", "dropped")
PHOTO_CATEGORY = ("event", "fellowship", "service", "community", "members", "general")


def _timestamps():
    return (
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def upgrade():
    op.create_table(
        "rotary_years",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rotary_year", sa.String(length=9), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("club_name", sa.String(length=120), nullable=False),
        sa.Column("club_number", sa.Integer()),
        sa.Column("district_number", sa.Integer()),
        sa.Column("charter_date", sa.Date()),
        sa.Column("club_president_name", sa.String(length=120), nullable=False),
        sa.Column("club_president_theme", sa.String(length=200)),
        sa.Column("ri_president_name", sa.String(length=120)),
        sa.Column("ri_president_theme", sa.String(length=200)),
        sa.Column("dg_name", sa.String(length=120)),
        sa.Column("dg_theme", sa.String(length=200)),
        sa.Column("summary", sa.Text()),
        sa.Column("narrative", sa.Text()),
        sa.Column("highlights", sa.JSON(), nullable=False),
        sa.Column("challenges", sa.JSON(), nullable=False),
        sa.Column("member_count_year_end", sa.Integer()),
        sa.Column("stats", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("rotary_year", name="uq_rotary_years_rotary_year"),
        sa.CheckConstraint("start_date < end_date", name="ck_rotary_year_date_order"),
    )

    op.create_table(
        "service_projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "area_of_focus",
            sa.Enum(*AREA_OF_FOCUS, name="areaoffocus"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*PROJECT_STATUS, name="projectstatus"),
            nullable=False,
            server_default="Idea",
        ),
        sa.Column(
            "type",
            sa.Enum(*PROJECT_TYPE, name="projecttype"),
            nullable=False,
            server_default="Club",
        ),
        sa.Column("champion", sa.String(length=120), nullable=False),
        sa.Column("project_value_rm", sa.Numeric(12, 2)),
        sa.Column("beneficiary_count", sa.Integer()),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date()),
        sa.Column("project_year", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(length=200)),
        sa.Column("completion_date", sa.Date()),
        sa.Column("volunteer_hours", sa.Integer()),
        sa.Column("lessons_learned", sa.Text()),
        sa.Column("rotary_year_id", sa.Integer(), sa.ForeignKey("rotary_years.id")),
        *_timestamps(),
        sa.CheckConstraint(
            "beneficiary_count IS NULL OR beneficiary_count >= 0",
            name="ck_service_projects_beneficiaries_positive",
        ),
        sa.CheckConstraint(
            "project_value_rm IS NULL OR project_value_rm >= 0",
            name="ck_service_projects_value_positive",
        ),
    )
    op.create_index(
        "ix_service_projects_year_status",
        "service_projects",
        ["rotary_year_id", "status"],
    )
    op.create_index(
        "ix_service_projects_project_year", "service_projects", ["project_year"]
    )

    op.create_table(
        "speakers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=200)),
        sa.Column("organization", sa.String(length=200)),
        sa.Column("topic", sa.String(length=200), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*SPEAKER_STATUS, name="speakerstatus"),
            nullable=False,
            server_default="ideas",
        ),
        sa.Column("scheduled_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        sa.Column("rotary_year_id", sa.Integer(), sa.ForeignKey("rotary_years.id")),
        *_timestamps(),
    )
    op.create_index(
        "ix_speakers_year_status", "speakers", ["rotary_year_id", "status"]
    )
    op.create_index(
        "ix_speakers_status_date", "speakers", ["status", "scheduled_date"]
    )

    op.create_table(
        "photos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("title", sa.String(length=200)),
        sa.Column("caption", sa.Text()),
        sa.Column("photo_date", sa.Date()),
        sa.Column(
            "category",
            sa.Enum(*PHOTO_CATEGORY, name="photocategory"),
            nullable=False,
            server_default="general",
        ),
        sa.Column(
            "is_featured", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("service_projects.id", ondelete="SET NULL"),
        ),
        sa.Column("rotary_year_id", sa.Integer(), sa.ForeignKey("rotary_years.id")),
        *_timestamps(),
    )
    op.create_index("ix_photos_year_date", "photos", ["rotary_year_id", "photo_date"])


def downgrade():
    op.drop_index("ix_photos_year_date", table_name="photos")
    op.drop_table("photos")
    op.drop_index("ix_speakers_status_date", table_name="speakers")
    op.drop_index("ix_speakers_year_status", table_name="speakers")
    op.drop_table("speakers")
    op.drop_index("ix_service_projects_project_year", table_name="service_projects")
    op.drop_index("ix_service_projects_year_status", table_name="service_projects")
    op.drop_table("service_projects")
    op.drop_table("rotary_years")
