import logging

import uvicorn

from .app import create_server
from .core.config import Config

Config.validate()

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)

app = create_server()

if __name__ == "__main__":
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
