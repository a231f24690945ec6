"""
背景估值排程器 (Background Valuation Worker)

使用 APScheduler 定期觸發估值週期：取得匯率與所有持有標的的最新報價，
重新計算淨值快照並發布。與手動刷新共用同一個 refresh 流程。
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from networth.services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

# 使用 AsyncIOScheduler
scheduler = AsyncIOScheduler()


async def run_valuation_cycle(service: ValuationService) -> None:
    """背景排程任務：執行一次估值週期"""
    try:
        await service.refresh()
    except Exception as e:
        logger.error("背景估值週期失敗: %s", e)


def setup_worker(service: ValuationService, interval_seconds: int = 60) -> None:
    """設定並啟動排程器"""
    scheduler.add_job(
        run_valuation_cycle,
        'interval',
        seconds=interval_seconds,
        args=[service],
        id='valuation_cycle_job',
        replace_existing=True,
    )
    scheduler.start()
    logger.info("✅ 背景估值排程器已啟動 (每 %d 秒)", interval_seconds)


def stop_worker() -> None:
    """停止排程器"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("背景估值排程器已關閉")
