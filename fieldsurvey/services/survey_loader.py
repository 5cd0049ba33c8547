"""Survey loader service for YAML survey definitions.

This module loads survey definitions from YAML files, validates them against
Pydantic schemas, and imports them into the database through the survey
administration rules. Surveys whose code already exists are left alone, so
the import is safe to run on every startup.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError
from sqlalchemy.orm import Session

from fieldsurvey.models.survey import Survey
from fieldsurvey.models.user import User
from fieldsurvey.schemas.definition import SurveyFile
from fieldsurvey.schemas.question import QuestionCreate
from fieldsurvey.services.errors import ServiceError
from fieldsurvey.services.survey_admin import SurveyAdminService
from fieldsurvey.services.user_admin import UserAdminService
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)


class SurveyNotFoundError(Exception):
    """Raised when a survey file is not found."""
    pass


class SurveyValidationError(Exception):
    """Raised when a survey file fails validation or cannot be imported."""
    pass


class SurveyLoader:
    """Service for loading survey definition files and importing them.

    Files live in the configured surveys directory as `<name>.yaml`.
    """

    def __init__(self, surveys_dir: str):
        """Initialize survey loader.

        Args:
            surveys_dir: Path to the directory holding survey YAML files
        """
        self.surveys_dir = Path(surveys_dir)

        if not self.surveys_dir.exists():
            logger.warning(f"Surveys directory not found: {self.surveys_dir}")

    def list_definitions(self) -> List[str]:
        """List all available definition names.

        Returns:
            Sorted file names without the .yaml extension

        Example:
            >>> SurveyLoader("./surveys").list_definitions()
            ['household_water']
        """
        if not self.surveys_dir.exists():
            return []

        names = [f.stem for f in self.surveys_dir.glob("*.yaml")]
        logger.debug(f"Found {len(names)} survey definitions: {names}")
        return sorted(names)

    def load_file(self, name: str) -> SurveyFile:
        """Load and validate one definition file.

        Args:
            name: File name without the .yaml extension

        Returns:
            Validated SurveyFile

        Raises:
            SurveyNotFoundError: If the file doesn't exist
            SurveyValidationError: If the YAML or its contents are invalid
        """
        yaml_path = self.surveys_dir / f"{name}.yaml"

        if not yaml_path.exists():
            logger.error(f"Survey file not found: {yaml_path}")
            raise SurveyNotFoundError(f"Survey definition '{name}' not found at {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error for {name}: {e}")
            raise SurveyValidationError(f"Invalid YAML in survey definition '{name}': {e}")
        except OSError as e:
            logger.error(f"Error reading survey file {yaml_path}: {e}")
            raise SurveyValidationError(f"Error reading survey definition '{name}': {e}")

        if not isinstance(raw_data, dict):
            raise SurveyValidationError(f"Survey definition '{name}' must be a mapping")

        try:
            definition = SurveyFile(**raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for survey definition {name}: {e}")
            raise SurveyValidationError(f"Validation failed for survey definition '{name}': {e}")

        logger.info(
            f"Loaded survey definition {name} with {len(definition.questions)} questions"
        )
        return definition

    def import_definition(self, db: Session, name: str) -> Optional[Survey]:
        """Import one definition file.

        Returns:
            The created Survey, or None when its code already exists

        Raises:
            SurveyNotFoundError: If the file doesn't exist
            SurveyValidationError: If the file is invalid or breaks a survey rule
        """
        definition = self.load_file(name)
        code = definition.survey.code

        if code and Survey.find_by_id_or_code(db, code) is not None:
            logger.info(f"Survey {code} already present, skipping {name}")
            return None

        try:
            self._import_users(db, definition)
            survey = self._import_survey(db, definition)
        except ServiceError as e:
            db.rollback()
            raise SurveyValidationError(f"Could not import survey definition '{name}': {e.message}")

        logger.info(f"Imported survey definition {name}", extra={"survey_code": survey.survey_code})
        return survey

    def import_all(self, db: Session) -> List[Survey]:
        """Import every definition in the directory.

        Returns:
            Surveys created by this run
        """
        created = []
        for name in self.list_definitions():
            survey = self.import_definition(db, name)
            if survey is not None:
                created.append(survey)
        return created

    def _import_users(self, db: Session, definition: SurveyFile) -> None:
        admin = UserAdminService(db)
        for entry in definition.users:
            if User.find_by_code(db, entry.user_code) is not None:
                continue
            admin.create_user(entry, created_by="survey-loader")

    def _import_survey(self, db: Session, definition: SurveyFile) -> Survey:
        admin = SurveyAdminService(db)
        survey_data = definition.survey
        survey = admin.create_survey(
            survey_data,
            created_by="survey-loader",
            survey_code=survey_data.code,
        )

        ids_by_key = {}
        try:
            for entry in definition.questions:
                payload = entry.model_dump(exclude={"key", "parent"})
                if entry.parent is not None:
                    payload["parent_question_id"] = ids_by_key[entry.parent]
                question = admin.add_question(str(survey.id), QuestionCreate(**payload))
                if entry.key:
                    ids_by_key[entry.key] = question.id
        except ServiceError:
            # Questions are committed one by one; drop the half-imported survey
            admin.delete_survey(str(survey.id))
            raise
        return survey
