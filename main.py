"""
Main entry point for the Banana Edit API service.
"""

import logging
import sys
import argparse

import uvicorn
from dotenv import load_dotenv

from config.manager import init_config

# 设置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="Banana Edit API Service")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="配置文件路径 (默认使用内置配置)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="服务器主机地址 (覆盖配置文件)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="服务器端口 (覆盖配置文件)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="日志级别 (覆盖配置文件)"
    )

    return parser.parse_args(argv)


def main():
    """主函数"""
    args = parse_args()

    # 从 .env 读取 GEMINI_API_KEY 等环境变量
    load_dotenv()

    try:
        logger.info("Initializing configuration...")
        config = init_config(args.config)

        if args.log_level:
            config.log.level = args.log_level

        host = args.host or config.server.host
        port = args.port or config.server.port

        logger.info(f"Starting server on {host}:{port}")
        logger.info(f"Remote model: {config.gemini.model_name}")

        # 配置加载完成后再导入应用，使其使用已加载的配置
        from api import app

        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level=config.log.level.lower(),
            access_log=True
        )

    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.error(f"Failed to start service: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
