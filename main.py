"""
Tile Board 主入口：启动 FastAPI 后端服务（仪表盘文档与样本数据）。
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tileboard import api
from tileboard.config_loader import AppConfig, load_config
from tileboard.data_controller import DataController
from tileboard.document_store import DocumentStore

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：启动时和关闭时的逻辑。"""
    document_store = app.state.document_store

    # 启动时：确保仪表盘文档存在
    document_store.ensure_document()
    state = document_store.read_state()
    logger.info(f"已加载 {len(state.get('dashboards', []))} 个仪表盘")

    yield  # 应用运行中

    # 关闭时：关闭数据库连接
    logger.info("正在关闭...")
    app.state.data_controller.close()


def create_app(config: AppConfig | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    if config is None:
        logger.info("正在加载配置...")
        config = load_config()

    app = FastAPI(
        title="Tile Board API",
        description="Dashboards document store and widget sample feed",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 初始化核心组件 ────────────────────────────────────────
    document_store = DocumentStore(config.server.data_dir)
    data_controller = DataController(f"{config.server.data_dir}/samples.json")

    # 注入依赖到 API 模块
    api.init_api(document_store=document_store, data_controller=data_controller)

    # 注册 API 路由
    app.include_router(api.router)

    # 将组件存到 app.state，供 lifespan 访问
    app.state.config = config
    app.state.document_store = document_store
    app.state.data_controller = data_controller

    return app


def main():
    """主入口。"""
    config = load_config()
    port = int(sys.argv[1]) if len(sys.argv) > 1 else config.server.port

    logger.info(f"🚀 启动 Tile Board 后端 (port={port})...")

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
