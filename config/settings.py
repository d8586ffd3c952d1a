from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global configuration for the project/world resolution engine."""

    # Definition documents: <base>/projects/<slug>/project.json
    DEFINITIONS_BASE_URL: str = "http://localhost:5173/"
    # Local directory with the same layout; takes precedence over HTTP when set
    DEFINITIONS_DIR: str = ""
    PROJECT_CATALOG: list[str] = [
        "AIClases.com", "Amazonia Apoteket", "Avatarmatic", "Beta", "Blue Voyage Travel",
        "BonsaiPrep", "Burgavision", "Burgertify", "Cursalo", "Develop Argentina",
        "Eat Easier", "Eaxily", "Eaxy.AI", "Foodelopers", "Foodiez Apparel",
        "Foodketing", "Hybridge", "Jaguar", "Jerry's", "LinkDialer", "LinkMas",
        "Menu Crafters", "Monchee", "PitchDeckGenie",
        "PlatePlatform", "PostRaptor", "Power Up Pizza", "RAM",
        "TaskArranger.com", "Tokitaka", "Wobistro",
    ]
    HTTP_TIMEOUT: float = 10.0
    MAX_CONCURRENT_FETCHES: int = 16

    DB_PATH: str = "data/worlds.db"
    LOG_PATH: str = "data/worlds.log"

    # Persisted keys
    PROJECTS_KEY: str = "portfolio_projects"
    PROJECTS_BACKUP_KEY: str = "portfolio_projects_backup"
    WORLDS_KEY: str = "portfolio_worlds"
    LAST_RECONCILED_KEY: str = "last_world_setup_time"
    DEEP_LINK_KEY: str = "target_world_id"
    DEEP_LINK_PROJECT_KEY: str = "target_project_id"

    RELOAD_THRESHOLD_SECONDS: float = 30.0
    TOUCH_VARIANT: bool = False
    INITIAL_WORLD_ID: str = "mainWorld"
    # An empty load (catalog unreachable) normally leaves the record store alone
    COMMIT_EMPTY_CATALOG: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }
