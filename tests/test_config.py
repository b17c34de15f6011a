from app.core.config import Settings


def test_database_url_is_built_from_postgres_settings():
    cfg = Settings(_env_file=None, POSTGRES_HOST="pg", POSTGRES_DB="graph", GRAPH_DATABASE_URL=None)
    assert cfg.DATABASE_URL.startswith("postgresql+psycopg2://")
    assert cfg.DATABASE_URL.endswith("@pg:5432/graph")


def test_explicit_graph_database_url_wins():
    cfg = Settings(_env_file=None, GRAPH_DATABASE_URL="sqlite:///./graph.db")
    assert cfg.DATABASE_URL == "sqlite:///./graph.db"


def test_defaults_match_the_pipeline_topology():
    cfg = Settings(_env_file=None)
    assert cfg.RAW_LOG_QUEUE == "snaplog"
    assert cfg.INCIDENT_QUEUE == "incident_queue"
    assert cfg.RESPONSE_QUEUE == "security_responses"
    assert cfg.CLASSIFIER_CONCURRENCY == 1
