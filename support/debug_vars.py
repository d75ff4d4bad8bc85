"""
Process metrics for GET /debug/vars.
"""
import gc
import os
import resource
import sys
import threading
import time

_STARTED_AT = time.time()


def collect_debug_vars(publisher=None) -> dict:
    """
    Snapshot of process and publisher metrics.

    :param publisher: The running JobUpdatePublisher, if there is one.
    """
    usage = resource.getrusage(resource.RUSAGE_SELF)
    data = {
        "cmdline": list(sys.argv),
        "pid": os.getpid(),
        "uptime_seconds": round(time.time() - _STARTED_AT, 3),
        "memstats": {
            "max_rss_kb": usage.ru_maxrss,
            "user_cpu_seconds": round(usage.ru_utime, 3),
            "system_cpu_seconds": round(usage.ru_stime, 3),
            "gc_counts": list(gc.get_count()),
            "gc_collections": sum(generation["collections"] for generation in gc.get_stats()),
            "threads": threading.active_count(),
        },
        "publisher": None,
    }
    if publisher is not None:
        # No broker URI: it may carry credentials.
        data["publisher"] = {
            "state": publisher.state.value,
            "exchange": publisher.exchange_name,
            "routing_key": publisher.routing_key,
            **publisher.stats.as_dict(),
        }
    return data
