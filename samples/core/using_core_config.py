"""Reading and overriding the connector configuration.

Values come, lowest precedence first, from the bundled config.ini, a .env file, environment variables
(CONDUIT_MONGO__HOST=...) and finally the overrides passed in code.
"""

from pydantic import BaseModel

from conduit.core import Conduit
from conduit.core.config import CoreSettings


class ReportingSettings(BaseModel):
    OUTPUT_COLLECTION: str = "reports"


class ReportingCoreSettings(CoreSettings):
    REPORTING: ReportingSettings = ReportingSettings()


class ReportJob(Conduit):
    def __init__(self):
        super().__init__(config_overrides=ReportingCoreSettings())

    def describe(self):
        print(self.config.CONDUIT_MONGO.HOST)
        print(self.config["CONDUIT_DIR_PATHS"]["LOGGER_DIR"])
        print(self.config.REPORTING.OUTPUT_COLLECTION)
        print(self.config.CONDUIT_MONGO.PASSWORD)  # masked
        print(bool(self.config.get_secret("CONDUIT_MONGO", "PASSWORD")))


if __name__ == "__main__":
    job = ReportJob()
    job.describe()

    staging = job.config.clone_with_overrides({"CONDUIT_MONGO": {"HOST": "staging-db"}})
    print(staging.CONDUIT_MONGO.HOST)
    staging.save_json("config_snapshot.json")
