import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the API; the embedded worker starts inside the app lifespan."""
  port = os.getenv("PORT", "3001")
  logger.info("Starting meshforge on port %s...", port)
  # uvicorn must own SIGTERM/SIGINT so lifespan shutdown runs.
  os.execvp("uvicorn", ["uvicorn", "meshforge.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
