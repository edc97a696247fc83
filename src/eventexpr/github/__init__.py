from .client import DEFAULT_GITHUB_URL, GitHubClient, GitHubClientOptions, GitHubError

__all__ = ["DEFAULT_GITHUB_URL", "GitHubClient", "GitHubClientOptions", "GitHubError"]
