"""Pick the authoritative provider from the host's source control settings."""

from safesave.vcs.models import ProviderKind


def resolve_preferred_provider(enabled: bool, provider_name: str) -> ProviderKind:
    """Map the host's active integration name onto a ProviderKind.

    A non-NONE result is authoritative: the poller probes only that provider,
    so a misconfigured integration reads as "no repo" instead of silently
    falling back to the other tool.
    """
    if not enabled:
        return ProviderKind.NONE
    name = provider_name.lower()
    if "plastic" in name or "unity" in name:
        return ProviderKind.PLASTIC
    if "git" in name:
        return ProviderKind.GIT
    return ProviderKind.NONE
