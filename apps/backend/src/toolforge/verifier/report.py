"""Verification report model with markdown rendering."""

from pydantic import BaseModel

from .sandbox import VerificationResult


class VerificationReport(BaseModel):
    """Summary of one verification run over a tool's test inputs."""

    tool_name: str
    results: list[VerificationResult]

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def all_passed(self) -> bool:
        return bool(self.results) and all(r.status == "passed" for r in self.results)

    def summary(self) -> dict:
        statuses = ("passed", "failed", "step_failed", "timed_out", "crashed", "error")
        counts = {status: self.count(status) for status in statuses}
        return {"tool": self.tool_name, "total": len(self.results), "allPassed": self.all_passed, **counts}

    def to_markdown(self) -> str:
        lines = [
            f"# Verification Report: {self.tool_name}",
            "",
            f"**Test inputs:** {len(self.results)}",
            f"**Passed:** {self.count('passed')}",
            f"**Failed:** {self.count('failed')}",
            f"**Step failures:** {self.count('step_failed')}",
            f"**Timed out:** {self.count('timed_out')}",
            f"**Crashed:** {self.count('crashed') + self.count('error')}",
            "",
            "## Results",
            "",
            "| # | Status | Elapsed | Detail |",
            "|---|--------|---------|--------|",
        ]

        for i, result in enumerate(self.results, 1):
            detail = ""
            if result.status == "step_failed" and result.error:
                detail = f"step {result.error['stepIndex']} returned {result.error['statusCode']}"
            elif result.error:
                detail = result.error.get("message") or result.error.get("kind", "")
            status_icon = {"passed": "OK", "failed": "FAIL", "timed_out": "TIMEOUT"}.get(
                result.status, result.status.upper()
            )
            lines.append(f"| {i} | {status_icon} | {result.elapsed_ms:.0f}ms | {detail} |")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
