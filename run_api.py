"""
API Server Runner

Entry point for running the analysis API under uvicorn with environment
setup and a startup check of the settings the pipeline depends on.
"""

import argparse
import logging
import os
import sys
import traceback

import uvicorn
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("api_runner")


def parse_arguments():
    """Parse command line arguments for the API server."""
    parser = argparse.ArgumentParser(description="Run the IdeaBox analysis API server")

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--env",
        type=str,
        choices=["development", "testing", "production"],
        default="development",
        help="Environment to run in (default: development)"
    )

    return parser.parse_args()


def setup_environment(env: str) -> None:
    """
    Set environment variables for the chosen deployment context.

    Args:
        env: Environment name (development, testing, production)
    """
    os.environ["ENVIRONMENT"] = env
    os.environ["DEBUG"] = "true" if env in ["development", "testing"] else "false"
    os.makedirs("data", exist_ok=True)


def verify_environment() -> bool:
    """Warn about missing settings the analysis pipeline needs."""
    load_dotenv()
    ok = True
    if not os.getenv("GROQ_API_KEY"):
        logger.warning("GROQ_API_KEY is not set; analysis requests will fail")
        ok = False
    if not os.getenv("DATABASE_URL"):
        logger.info("DATABASE_URL not set; using sqlite:///data/ideabox.db")
    return ok


def main():
    """Run the API server."""
    args = parse_arguments()
    setup_environment(args.env)
    verify_environment()

    logger.info(f"Starting API server in {args.env} mode")
    logger.info(f"Server will be available at http://{args.host}:{args.port}")
    if args.env == "development":
        logger.info(f"API documentation will be available at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info" if args.env == "production" else "debug"
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error running server: {str(e)}")
        logger.error(traceback.format_exc())
        sys.exit(1)
