"""
CareMatch Recommendation Migration
Creates recommendation run, detail and audit tables in PostgreSQL.
"""

RECOMMENDATIONS_MIGRATION_SQL = """
-- Recommendation tables
-- Requires: demandes, professionals

CREATE TABLE IF NOT EXISTS recommendation_configs (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    key TEXT UNIQUE NOT NULL,
    name_fr TEXT NOT NULL,
    description_fr TEXT,
    system_prompt TEXT NOT NULL DEFAULT '',
    user_prompt_template TEXT NOT NULL DEFAULT '',

    weight_motif_match INTEGER NOT NULL DEFAULT 30,
    weight_specialty_match INTEGER NOT NULL DEFAULT 20,
    weight_availability INTEGER NOT NULL DEFAULT 20,
    weight_profession_fit INTEGER NOT NULL DEFAULT 15,
    weight_experience INTEGER NOT NULL DEFAULT 15,

    require_availability_within_days INTEGER NOT NULL DEFAULT 14,
    require_motif_overlap BOOLEAN NOT NULL DEFAULT TRUE,
    require_population_match BOOLEAN NOT NULL DEFAULT FALSE,
    availability_max_hours INTEGER NOT NULL DEFAULT 40,
    experience_max_years INTEGER NOT NULL DEFAULT 20,

    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),

    CONSTRAINT weights_sum_100 CHECK (
        weight_motif_match + weight_specialty_match + weight_availability +
        weight_profession_fit + weight_experience = 100
    )
);

CREATE TABLE IF NOT EXISTS demande_recommendations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    demande_id UUID NOT NULL REFERENCES demandes(id) ON DELETE CASCADE,
    config_id UUID REFERENCES recommendation_configs(id) ON DELETE SET NULL,
    config_key TEXT NOT NULL DEFAULT 'default',

    input_snapshot JSONB NOT NULL,
    input_hash TEXT,
    recommendations JSONB NOT NULL,
    ai_summary_fr TEXT,
    ai_extracted_preferences JSONB,
    exclusions JSONB,
    near_eligible JSONB,
    advisory_success BOOLEAN NOT NULL DEFAULT FALSE,

    generated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    generated_by TEXT,
    model_version TEXT,
    processing_time_ms INTEGER,

    is_current BOOLEAN NOT NULL DEFAULT TRUE,
    superseded_at TIMESTAMPTZ,
    superseded_by UUID REFERENCES demande_recommendations(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_demande_recommendations_demande ON demande_recommendations(demande_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_demande_recommendations_one_current
    ON demande_recommendations(demande_id) WHERE is_current = TRUE;

CREATE TABLE IF NOT EXISTS recommendation_professional_details (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    recommendation_id UUID NOT NULL REFERENCES demande_recommendations(id) ON DELETE CASCADE,
    professional_id UUID NOT NULL REFERENCES professionals(id) ON DELETE CASCADE,
    rank INTEGER NOT NULL,
    total_score NUMERIC(6,4) NOT NULL,
    deterministic_score NUMERIC(6,4) NOT NULL,
    motif_match_score NUMERIC(6,4) NOT NULL,
    specialty_match_score NUMERIC(6,4) NOT NULL,
    availability_score NUMERIC(6,4) NOT NULL,
    profession_fit_score NUMERIC(6,4) NOT NULL,
    experience_score NUMERIC(6,4) NOT NULL,
    ai_ranking_adjustment NUMERIC(4,2),
    ai_reasoning_bullets JSONB NOT NULL,
    matched_motifs JSONB NOT NULL,
    matched_specialties JSONB NOT NULL,
    available_slots_count INTEGER NOT NULL,
    next_available_slot TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE(recommendation_id, professional_id)
);

CREATE INDEX IF NOT EXISTS idx_recommendation_details_recommendation
    ON recommendation_professional_details(recommendation_id);
CREATE INDEX IF NOT EXISTS idx_recommendation_details_professional
    ON recommendation_professional_details(professional_id);

CREATE TABLE IF NOT EXISTS recommendation_audit_log (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    recommendation_id UUID NOT NULL REFERENCES demande_recommendations(id) ON DELETE CASCADE,
    actor_id TEXT,
    action TEXT NOT NULL,
    context JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_recommendation_audit_recommendation
    ON recommendation_audit_log(recommendation_id);
CREATE INDEX IF NOT EXISTS idx_recommendation_audit_created_at
    ON recommendation_audit_log(created_at);
"""


def get_migration_sql() -> str:
    return RECOMMENDATIONS_MIGRATION_SQL
