import logging

import uvicorn

from devicehub.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logging.getLogger("device.register").setLevel(logging.DEBUG)

uvicorn.run("devicehub.main:create_app", factory=True, host="0.0.0.0", port=8080, reload=False)
