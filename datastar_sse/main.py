"""
启动入口：

python -m datastar_sse.main

读取配置（.env / config/config.yaml），校验通过后用 uvicorn 启动示例 API。
"""

import uvicorn

from datastar_sse.api.app import create_app
from datastar_sse.config import load_config, validate_config
from datastar_sse.utils.logger import logger


def main() -> None:
    cfg = load_config()
    errors = validate_config(cfg)
    if errors:
        # 友好提示用户修正配置
        print("配置错误：")
        for e in errors:
            print(f"- {e}")
        print("\n请在 .env 或 config/config.yaml 中修正后再运行。")
        raise SystemExit(1)

    # loguru 的 SUCCESS 级别 uvicorn 不认识
    uvicorn_level = cfg.log_level.lower()
    if uvicorn_level == "success":
        uvicorn_level = "info"

    logger.info(f"启动 datastar-sse：http://{cfg.server.host}:{cfg.server.port}")
    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=uvicorn_level,
    )


if __name__ == "__main__":
    main()
