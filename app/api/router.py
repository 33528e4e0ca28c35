from fastapi import APIRouter
from app.api.routes.admin import r2_router

api_router = APIRouter()

# 将所有路由配置定义在一个列表中
# 每个元素都是一个包含 router, prefix, 和 tags 的字典
routers_to_include = [
    # admin routers
    {"router": r2_router.router, "prefix": "/admin/r2", "tags": ["admin:r2"]},
]

# 使用一个循环来包含所有路由 ✨
for route_config in routers_to_include:
    api_router.include_router(**route_config)
