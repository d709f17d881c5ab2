"""Kernel support detection.

A completely unsupported (e.g. self-built) kernel should still get every
module it needs, even those without the ``supported`` attribute.  On a
supported kernel, unsupported modules stay out.  The kernel's status is
inferred from the sentinel module, which ships supported on every
architecture.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mkinitrd.config import SENTINEL_MODULE
from mkinitrd.errors import ModuleQueryError
from mkinitrd.kmod.query import ModuleQuery
from mkinitrd.observability import StructuredLogger


@dataclass(slots=True)
class KernelSupportProbe:
    query: ModuleQuery
    sentinel: str = SENTINEL_MODULE
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def is_supported(self, kernel_version: str) -> bool:
        try:
            answer = self.query.supported(kernel_version, self.sentinel)
        except ModuleQueryError as exc:
            # No support metadata is the same as the pre-check behaviour.
            self.logger.log(
                operation="probe_support",
                module=self.sentinel,
                message=f"Support query failed; assuming supported kernel ({kernel_version}).",
                extra={"error": exc.to_dict()},
            )
            return True

        supported = "yes" in answer
        self.logger.log(
            operation="probe_support",
            module=self.sentinel,
            message=(
                f"{'Supported' if supported else 'Unsupported'} kernel ({kernel_version})"
            ),
            extra={"answer": answer},
        )
        return supported
