"""Main entry point for the progression API"""
import logging
import uvicorn
from src.config import validate_config, LOG_LEVEL, API_HOST, API_PORT
from src.api.server import create_api_application

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Main application entry point"""
    logger.info("Validating configuration...")
    validate_config()

    logger.info(f"Starting API on {API_HOST}:{API_PORT}")
    uvicorn.run(create_api_application(), host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
