"""Settings library for the sync and authentication configurations.

Provides:
    - Schema validation for the sync.json structure.
    - Loading, saving and reverting sync.json sections and client_secret.json.
    - Per-user config paths for the stored Google grant and the sync state database.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List, Union

from PySide6 import QtCore

from ..status import status

app_name: str = 'ReceiptsRegister'

METADATA_KEYS: List[str] = [
    'locale',
]

SYNC_SCHEMA: Dict[str, Any] = {
    'spreadsheet': {
        'type': dict,
        'required': True,
        'item_schema': {
            'app_name': {'type': str, 'required': True},
            'title_key': {'type': str, 'required': True},
        }
    },
    'metadata': {
        'type': dict,
        'required': True,
        'item_schema': {
            'locale': {'type': str, 'required': True},
        }
    },
}


def _validate_section(section_name: str, section: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate one section of the sync configuration.

    Ensures every required field is present, has the expected type, and that
    string values are not blank.

    Args:
        section_name: Name of the section, used in error messages.
        section: The section data.
        item_schema: Dict describing required fields and their types.

    Raises:
        TypeError: If the section or a field has the wrong type.
        ValueError: If a required field is missing or blank.
    """
    logging.debug(f'Validating "{section_name}" section.')
    if not isinstance(section, dict):
        msg: str = f'"{section_name}" must be a dict.'
        logging.error(msg)
        raise TypeError(msg)
    for field, field_specs in item_schema.items():
        if field_specs['required'] and field not in section:
            msg = f'"{section_name}" is missing "{field}".'
            logging.error(msg)
            raise ValueError(msg)
        if field not in section:
            continue
        value = section[field]
        if not isinstance(value, field_specs['type']):
            msg = (
                f'"{section_name}" field "{field}" must be {field_specs["type"]}, '
                f'got {type(value)}.'
            )
            logging.error(msg)
            raise TypeError(msg)
        if isinstance(value, str) and not value.strip():
            msg = f'"{section_name}" field "{field}" must not be empty.'
            logging.error(msg)
            raise ValueError(msg)


class ConfigPaths:
    """Manage application file paths and ensure default templates and directories exist.

    Paths live under the per-user app data directory unless ``config_dir`` is given.
    The default client_secret.json and sync.json are copied from the bundled
    templates on first use.
    """

    def __init__(self, config_dir: Optional[Union[str, pathlib.Path]] = None) -> None:
        QtCore.QCoreApplication.setApplicationName(app_name)
        QtCore.QCoreApplication.setOrganizationName('')

        if config_dir is None:
            p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
            app_data_dir = pathlib.Path(p)
            logging.debug(f'Using app data directory: {app_data_dir}')
            config_dir = app_data_dir / 'config'

        self.template_dir: pathlib.Path = pathlib.Path(__file__).parent.parent / 'config'
        self.client_secret_template: pathlib.Path = self.template_dir / 'client_secret.json.template'
        self.sync_config_template: pathlib.Path = self.template_dir / 'sync.json.template'

        self.config_dir: pathlib.Path = pathlib.Path(config_dir)
        self.auth_dir: pathlib.Path = self.config_dir / 'auth'
        self.db_dir: pathlib.Path = self.config_dir / 'db'

        # Config files
        self.client_secret_path: pathlib.Path = self.config_dir / 'client_secret.json'
        self.sync_config_path: pathlib.Path = self.config_dir / 'sync.json'
        self.creds_path: pathlib.Path = self.auth_dir / 'creds.json'
        self.state_db_path: pathlib.Path = self.db_dir / 'state.db'

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify templates exist and prepare configuration directories and files.

        Raises:
            FileNotFoundError: If a required template is missing.
        """
        logging.debug(f'Verifying required templates in {self.template_dir}')
        for template in (self.client_secret_template, self.sync_config_template):
            if not template.exists():
                msg: str = f'Missing template: {template}'
                logging.error(msg)
                raise FileNotFoundError(msg)

        for directory in (self.config_dir, self.auth_dir, self.db_dir):
            if not directory.exists():
                logging.debug(f'Creating directory: {directory}')
                directory.mkdir(parents=True, exist_ok=True)

        # Ensure valid configs exist even if we haven't yet set them up
        if not self.client_secret_path.exists():
            logging.debug(f'Copying default client_secret from template to {self.client_secret_path}')
            shutil.copy(self.client_secret_template, self.client_secret_path)
        if not self.sync_config_path.exists():
            logging.debug(f'Copying default sync config from template to {self.sync_config_path}')
            shutil.copy(self.sync_config_template, self.sync_config_path)

    def revert_client_secret_to_template(self) -> None:
        """Restore client_secret.json from the default template file."""
        logging.debug(f'Reverting client_secret to template: {self.client_secret_template}')
        shutil.copy(self.client_secret_template, self.client_secret_path)


class SettingsAPI(ConfigPaths):
    """
    Provides an interface to get/set/revert/save sync.json sections and client_secret.json.
    """
    required_client_secret_keys: List[str] = ['client_id', 'project_id', 'client_secret', 'auth_uri', 'token_uri']

    def __init__(self, config_dir: Optional[Union[str, pathlib.Path]] = None) -> None:
        super().__init__(config_dir=config_dir)

        self.sync_data: Dict[str, Any] = {k: {} for k in SYNC_SCHEMA}
        self.client_secret_data: Dict[str, Any] = {}

        self.init_data()

    def __getitem__(self, key: str) -> Any:
        """Retrieve a metadata value using dictionary-style access.

        Raises:
            KeyError: If key is not in METADATA_KEYS.
        """
        if key not in METADATA_KEYS:
            raise KeyError(f'Invalid metadata key: {key}, must be one of {METADATA_KEYS}')
        return self.sync_data['metadata'].get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        """Assign a metadata value using dictionary-style access and persist it.

        Raises:
            KeyError: If key is not in METADATA_KEYS.
            TypeError: If the value has the wrong type.
        """
        if key not in METADATA_KEYS:
            raise KeyError(f'Invalid metadata key: {key}, must be one of {METADATA_KEYS}')

        _type = SYNC_SCHEMA['metadata']['item_schema'][key]['type']
        if not isinstance(value, _type):
            msg = f'Metadata key "{key}" must be of type {_type}, got {type(value)}.'
            logging.error(msg)
            raise TypeError(msg)

        self.sync_data['metadata'][key] = value
        self.save_section('metadata')
        self._emit_changed('metadata')

    def _emit_changed(self, section_name: str) -> None:
        from ..ui.actions import signals
        signals.configSectionChanged.emit(section_name)

    def init_data(self) -> None:
        """Reload sync config and client_secret data, emitting change signals."""
        self.load_sync_config()
        self.load_client_secret()

        self._emit_changed('client_secret')
        for section in SYNC_SCHEMA:
            self._emit_changed(section)

    def load_sync_config(self) -> Dict[str, Any]:
        """Load sync.json from disk and validate against schema.

        Raises:
            status.SyncConfigNotFoundException: If sync.json file is missing.
            status.SyncConfigInvalidException: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading sync config from "{self.sync_config_path}"')
        if not self.sync_config_path.exists():
            raise status.SyncConfigNotFoundException

        try:
            with self.sync_config_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_sync_config(data)
        except (ValueError, TypeError) as ex:
            raise status.SyncConfigInvalidException(str(ex)) from ex

        self.sync_data = data
        return self.sync_data

    def load_client_secret(self) -> Dict[str, Any]:
        """Load client_secret.json from disk and validate required OAuth fields.

        Raises:
            status.ClientSecretNotFoundException: If client_secret.json file is missing.
            status.ClientSecretInvalidException: If JSON parsing or required fields are missing.
        """
        logging.debug(f'Loading client_secret from "{self.client_secret_path}"')
        if not self.client_secret_path.exists():
            raise status.ClientSecretNotFoundException
        try:
            with self.client_secret_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
        except (ValueError, json.JSONDecodeError) as ex:
            raise status.ClientSecretInvalidException from ex

        self.validate_client_secret(data)
        self.client_secret_data = data
        return self.client_secret_data

    def validate_client_secret(self, data: Optional[Dict[str, Any]] = None) -> str:
        """Validate that the client configuration contains required OAuth credentials.

        Args:
            data (dict, optional): Client secret data to validate. Defaults to loaded client_secret_data.

        Returns:
            str: Section key used ('installed' or 'web').

        Raises:
            status.ClientSecretInvalidException: If no valid section exists or required fields are missing.
        """
        if data is None:
            data = self.client_secret_data

        key = next((k for k in ('installed', 'web') if k in data), None)
        if not key:
            raise status.ClientSecretInvalidException('Missing "installed" or "web" section in client_secret.')

        logging.debug(f'Found "{key}" section in client_secret.')

        missing: List[str] = [k for k in self.required_client_secret_keys if k not in data[key]]
        if missing:
            raise status.ClientSecretInvalidException(
                f'Missing required fields in the \'{key}\' section: {missing}.'
            )
        return key

    def validate_sync_config(self, data: Optional[Dict[str, Any]] = None) -> None:
        """Validate sync config data against SYNC_SCHEMA.

        Raises:
            ValueError: If a required section or field is missing.
            TypeError: If a section or field has the wrong type.
        """
        if data is None:
            data = self.sync_data
        if not data:
            raise ValueError('Sync config is empty.')

        logging.debug('Validating sync config against schema.')
        for field, specs in SYNC_SCHEMA.items():
            if specs.get('required') and field not in data:
                raise ValueError(f'Missing required field: {field}')
            if field not in data:
                continue
            if not isinstance(data[field], specs['type']):
                raise TypeError(f'Field "{field}" must be {specs["type"]}, got {type(data[field])}.')
            _validate_section(field, data[field], specs['item_schema'])

        logging.debug('Sync config is valid.')

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """Retrieve a copy of configuration data for a sync or client_secret section.

        Raises:
            KeyError: If section_name is unknown.
        """
        if section_name == 'client_secret':
            return self.client_secret_data.copy()

        return self.sync_data[section_name].copy()

    def set_section(self, section_name: str, new_data: Dict[str, Any]) -> None:
        """Replace and persist a configuration section.

        Raises:
            ValueError: If section_name is unrecognized or validation fails.
            TypeError: If the new data has the wrong types.
        """
        if section_name == 'client_secret':
            logging.debug('Setting entire client_secret data.')
            self.validate_client_secret(new_data)
            self.client_secret_data = new_data
            self.save_section('client_secret')
            self._emit_changed(section_name)
            return

        if section_name not in self.sync_data:
            msg: str = f'Unknown section_name for set: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        current_section_data: Dict[str, Any] = self.sync_data[section_name].copy()

        self.sync_data[section_name] = new_data
        try:
            self.validate_sync_config()
        except (ValueError, TypeError) as e:
            logging.error(f'Validation error on set_section("{section_name}"): {e}')
            self.sync_data[section_name] = current_section_data
            raise

        self.save_section(section_name)
        self._emit_changed(section_name)

    def revert_section(self, section_name: str) -> None:
        """Revert a configuration section to its template default and save.

        Raises:
            ValueError: If section_name is invalid.
        """
        if section_name == 'client_secret':
            self.revert_client_secret_to_template()
            self.load_client_secret()
            self._emit_changed(section_name)
            return

        if section_name not in self.sync_data:
            msg: str = f'Unknown section_name for revert: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.sync_config_template.open('r', encoding='utf-8') as f:
            template_data: Dict[str, Any] = json.load(f)

        self.sync_data[section_name] = template_data[section_name]
        self.save_section(section_name)
        self._emit_changed(section_name)

    def save_section(self, section_name: str) -> None:
        """Persist a single configuration section to its corresponding file.

        Raises:
            ValueError: If section_name is not recognized.
        """
        if section_name == 'client_secret':
            logging.debug(f'Saving client_secret to "{self.client_secret_path}"')
            self.validate_client_secret(self.client_secret_data)
            with self.client_secret_path.open('w', encoding='utf-8') as f:
                json.dump(self.client_secret_data, f, indent=4, ensure_ascii=False)
            return

        if section_name not in self.sync_data:
            msg: str = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.sync_config_path.open('r', encoding='utf-8') as f:
            original_data: Dict[str, Any] = json.load(f)

        new_data: Dict[str, Any] = original_data.copy()
        new_data[section_name] = self.sync_data[section_name]

        logging.debug(f'Saving section "{section_name}" to "{self.sync_config_path}"')
        with self.sync_config_path.open('w', encoding='utf-8') as f:
            json.dump(new_data, f, indent=4, ensure_ascii=False)


settings: SettingsAPI = SettingsAPI()
