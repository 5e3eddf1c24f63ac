"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中。
这个 router 会被注册到主应用（app/main.py）上。

路由模块说明：
- referral: 推荐链接点击、归因查询
- subscription: checkout、订阅状态
- payments: 支付平台 webhook
- ambassadors: 大使管理、佣金、看板
- notifications: 大使通知
- utils: 工具相关（健康检查等）
"""
from fastapi import APIRouter

from app.api.routes import (
    ambassadors,  # 大使路由
    notifications,  # 通知路由
    payments,  # 支付 webhook 路由
    referral,  # 推荐归因路由
    subscription,  # 订阅路由
    utils,  # 工具路由
)

# 创建主 API 路由器
api_router = APIRouter()

# 每个模块的路径前缀在各自的 router 中定义
api_router.include_router(referral.router)  # /referral/*
api_router.include_router(subscription.router)  # /subscription/*
api_router.include_router(payments.router)  # /payments/*
api_router.include_router(ambassadors.router)  # /ambassadors/*
api_router.include_router(notifications.router)  # /notifications/*
api_router.include_router(utils.router)  # /utils/*
