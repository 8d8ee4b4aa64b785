"""
Feature Flags Configuration

Centralized feature flag management for the backend.
All feature flags are loaded from environment variables.
"""
from learnlite.config.settings import get_bool_env


class FeatureFlags:
    """
    Feature flags for the application.

    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """

    # A course without lessons counts as fully completed for certificates
    FEATURE_CERTIFICATES_EMPTY_COURSES: bool = get_bool_env('FEATURE_CERTIFICATES_EMPTY_COURSES', True)

    # Public registration may request the admin role
    FEATURE_OPEN_ADMIN_SIGNUP: bool = get_bool_env('FEATURE_OPEN_ADMIN_SIGNUP', False)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.startswith('FEATURE_') and not callable(getattr(cls, key))
        }

    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled."""
        return getattr(cls, flag_name, False)


feature_flags = FeatureFlags()
