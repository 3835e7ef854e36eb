"""
服务指标收集模块

收集ID生成器的运行指标，并以Prometheus格式导出。
每个应用使用独立的CollectorRegistry，同一进程内可以创建多个应用实例。
"""

from typing import Iterator, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.exposition import generate_latest
from prometheus_client.registry import Collector

from clockflake.core.generator import IdGenerator


class GeneratorCollector(Collector):
    """
    生成器状态收集器

    每次抓取时读取生成器的状态快照：
    - 时钟回拨次数
    - 当前时钟偏移量
    - 当前序列号
    """

    def __init__(self, generator: IdGenerator, prefix: str = "clockflake"):
        self.generator = generator
        self.prefix = prefix

    def collect(self) -> Iterator[Metric]:
        state = self.generator.snapshot()
        labels = ["worker_id"]
        label_values = [str(state.worker_id)]

        rollbacks = CounterMetricFamily(
            f"{self.prefix}_clock_rollbacks",
            "Number of clock rollbacks observed by the generator",
            labels=labels,
        )
        rollbacks.add_metric(label_values, state.rollback_count)
        yield rollbacks

        offset = GaugeMetricFamily(
            f"{self.prefix}_clock_offset_milliseconds",
            "Outstanding clock offset added to the real clock",
            labels=labels,
        )
        offset.add_metric(label_values, state.clock_offset)
        yield offset

        sequence = GaugeMetricFamily(
            f"{self.prefix}_sequence",
            "Sequence number within the current virtual millisecond",
            labels=labels,
        )
        sequence.add_metric(label_values, state.sequence)
        yield sequence


class GeneratorMetrics:
    """
    生成器指标

    属性：
        registry: CollectorRegistry
            指标注册表
        ids_generated: Counter
            通过HTTP服务发放的ID数量
    """

    def __init__(self, generator: IdGenerator, prefix: str = "clockflake"):
        self.registry = CollectorRegistry()
        self.ids_generated = Counter(
            f"{prefix}_ids_generated",
            "Number of ids handed out by the service",
            ["worker_id"],
            registry=self.registry,
        ).labels(worker_id=str(generator.worker_id))
        self.registry.register(GeneratorCollector(generator, prefix))

    def render(self) -> Tuple[bytes, str]:
        """
        导出Prometheus格式的指标

        Returns:
            Tuple[bytes, str]: 指标内容和Content-Type
        """
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
