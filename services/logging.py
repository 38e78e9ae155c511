"""
结构化日志系统

提供统一的日志记录、请求追踪，以及接口和远程模型调用的性能统计。
"""

import copy
import inspect
import logging
import time
import uuid
from datetime import datetime
from typing import Dict, Any, Optional
from contextvars import ContextVar
from functools import wraps

import structlog
from structlog.stdlib import LoggerFactory

# 请求上下文变量
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class RequestTracker:
    """请求追踪器"""

    def __init__(self):
        self.active_requests: Dict[str, Dict[str, Any]] = {}

    def start_request(self, request_id: str, endpoint: str, method: str, client_ip: str = None) -> Dict[str, Any]:
        """开始追踪请求"""
        request_info = {
            "request_id": request_id,
            "endpoint": endpoint,
            "method": method,
            "client_ip": client_ip,
            "start_time": time.time(),
            "timestamp": datetime.now().isoformat()
        }

        self.active_requests[request_id] = request_info
        return request_info

    def end_request(self, request_id: str, status_code: int, error: str = None) -> Dict[str, Any]:
        """结束请求追踪"""
        request_info = self.active_requests.pop(request_id, None)
        if request_info is None:
            return {}

        end_time = time.time()
        request_info.update({
            "end_time": end_time,
            "duration": end_time - request_info["start_time"],
            "status_code": status_code,
            "error": error
        })
        return request_info

    def get_active_requests(self) -> Dict[str, Dict[str, Any]]:
        """获取活跃请求"""
        return self.active_requests.copy()


def _duration_stats() -> Dict[str, Any]:
    return {"count": 0, "error_count": 0, "total_duration": 0.0, "avg_duration": 0.0}


def _accumulate(stats: Dict[str, Any], duration: float, failed: bool) -> None:
    stats["count"] += 1
    stats["total_duration"] += duration
    stats["avg_duration"] = stats["total_duration"] / stats["count"]
    if failed:
        stats["error_count"] += 1


def _empty_metrics() -> Dict[str, Any]:
    return {
        "requests": _duration_stats(),
        "endpoint_stats": {},
        "error_stats": {},
        "remote_calls": dict(_duration_stats(), failures_by_kind={})
    }


class PerformanceMonitor:
    """性能监控器

    分别统计 HTTP 接口请求和远程模型调用；远程失败按 ServiceErrorKind 计数。
    """

    def __init__(self):
        self.metrics = _empty_metrics()

    def record_request(self, endpoint: str, duration: float, status_code: int, error_type: str = None):
        """记录 HTTP 请求指标"""
        failed = status_code >= 400
        _accumulate(self.metrics["requests"], duration, failed)
        _accumulate(
            self.metrics["endpoint_stats"].setdefault(endpoint, _duration_stats()), duration, failed
        )

        if failed and error_type:
            error_stats = self.metrics["error_stats"]
            error_stats[error_type] = error_stats.get(error_type, 0) + 1

    def record_remote_call(self, duration: float, failure_kind: Optional[str] = None):
        """记录一次远程模型调用"""
        remote = self.metrics["remote_calls"]
        _accumulate(remote, duration, failure_kind is not None)

        if failure_kind:
            by_kind = remote["failures_by_kind"]
            by_kind[failure_kind] = by_kind.get(failure_kind, 0) + 1

    def get_metrics(self) -> Dict[str, Any]:
        """获取性能指标快照"""
        return copy.deepcopy(self.metrics)

    def reset_metrics(self):
        self.metrics = _empty_metrics()


def add_request_context(logger, method_name, event_dict):
    """添加请求上下文到日志"""
    request_id = request_id_var.get('')
    if request_id:
        event_dict['request_id'] = request_id
    return event_dict


def configure_logging(log_level: str = "INFO", log_file: str = None, json_format: bool = True):
    """配置结构化日志"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 标准库日志仅输出 structlog 渲染后的消息
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        handlers=[
            logging.StreamHandler(),
            *([logging.FileHandler(log_file, encoding='utf-8')] if log_file else [])
        ],
        force=True
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志器"""
    return structlog.get_logger(name)


def set_request_context(request_id: str = None) -> str:
    """设置请求上下文"""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def clear_request_context():
    """清除请求上下文"""
    request_id_var.set('')


def log_performance(func_name: str = None):
    """性能日志装饰器，记录函数耗时；异常记录后原样抛出"""
    def decorator(func):
        def log_outcome(start_time: float, error: Exception = None):
            logger = get_logger(func_name or func.__name__)
            duration = time.time() - start_time
            if error is None:
                logger.info("Function completed", function=func.__name__, duration=duration, success=True)
            else:
                logger.warning(
                    "Function failed",
                    function=func.__name__,
                    duration=duration,
                    error_type=type(error).__name__,
                    success=False
                )

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    log_outcome(start_time, e)
                    raise
                log_outcome(start_time)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log_outcome(start_time, e)
                raise
            log_outcome(start_time)
            return result
        return sync_wrapper

    return decorator


# 全局实例
request_tracker = RequestTracker()
performance_monitor = PerformanceMonitor()
