"""Aggregated health report across kernel capabilities."""

from __future__ import annotations

from feishu_channel.kernel.kernel import FeishuKernel


async def aggregate_health(kernel: FeishuKernel) -> dict:
    results = await kernel.health_check_all()
    capabilities = {name: "healthy" if ok else "unhealthy" for name, ok in results}
    all_healthy = all(ok for _, ok in results)
    return {"status": "healthy" if all_healthy else "degraded", "capabilities": capabilities}
