from autorerun.devops.api import DevOpsAPI
from autorerun.devops.model import Build, JobRequest

__all__ = ["Build", "DevOpsAPI", "JobRequest"]
