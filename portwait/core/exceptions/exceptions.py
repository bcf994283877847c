from typing import Optional


class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for domain logic errors."""
    pass

class InvalidTargetError(DomainError):
    def __init__(self, value, detail: str = ""):
        self.value = value
        self.message = f"The probe target '{value}' is invalid"
        if detail:
            self.message += f": {detail}"
        super().__init__(self.message)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (network, processes, etc)."""
    pass

class DependencyUnavailableError(InfrastructureError):
    def __init__(self, target: str, attempts: int, elapsed_s: float, last_error: str = "",
                 total_elapsed_s: Optional[float] = None):
        self.target = target
        self.attempts = attempts
        self.elapsed_s = elapsed_s
        self.last_error = last_error
        self.total_elapsed_s = total_elapsed_s
        if total_elapsed_s is None:
            waited = f"{elapsed_s:.1f}s"
        else:
            waited = f"{elapsed_s:.1f}s on this target, {total_elapsed_s:.1f}s in total"
        self.message = f"Dependency '{target}' not reachable after {attempts} attempts ({waited})"
        if last_error:
            self.message += f": {last_error}"
        super().__init__(self.message)

class HandoffError(InfrastructureError):
    def __init__(self, command: str, detail: str = "", exit_code: int = 127):
        self.command = command
        self.exit_code = exit_code
        self.message = f"Could not launch '{command}'"
        if detail:
            self.message += f": {detail}"
        super().__init__(self.message)
