"""Drift database module.

Generates a SQLite (Drift) persistence layer that runs natively and, through
WASM plus a web worker, in the browser.  The database file is a declared
template; per-table table and DAO files are rendered from the module config's
``tables`` list by the ``on_generate`` hook.

Config keys:
- ``databaseName``           -- Dart file / class name of the database
- ``schemaVersion``          -- Drift schema version
- ``tables``                 -- ``{name, columns, timestamps?, softDelete?}`` dicts
- ``encryption``             -- SQLCipher encryption with a generated key manager
- ``encryptionKeyStrategy``  -- ``derived``, ``stored`` or ``user-provided``
- ``webWorker`` / ``opfs``   -- web backend switches
- ``enableMigrations``       -- emit an ``onUpgrade`` migration step
"""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import Field

from flutter_pwa_builder.models import (
    ConditionOperator,
    GeneratedFile,
    Module,
    Template,
    TemplateCondition,
    TemplateContext,
    TemplateOutput,
)
from flutter_pwa_builder.templating.helpers import camel_case

if TYPE_CHECKING:
    from flutter_pwa_builder.modules.hooks import HookContext

DEFAULT_CONFIG: dict[str, Any] = {
    "databaseName": "app_database",
    "encryption": False,
    "encryptionKeyStrategy": "derived",
    "tables": [],
    "relations": [],
    "enableMigrations": True,
    "webWorker": True,
    "opfs": True,
    "schemaVersion": 1,
}

KEY_STRATEGIES = ("derived", "stored", "user-provided")

_COLUMN_CLASSES: dict[str, str] = {
    "integer": "IntColumn",
    "text": "TextColumn",
    "real": "RealColumn",
    "blob": "BlobColumn",
    "boolean": "BoolColumn",
    "dateTime": "DateTimeColumn",
}

_COLUMN_DART_TYPES: dict[str, str] = {
    "integer": "int",
    "text": "String",
    "real": "double",
    "blob": "Uint8List",
    "boolean": "bool",
    "dateTime": "DateTime",
}


# ---------------------------------------------------------------------------
# Template helpers
# ---------------------------------------------------------------------------


def drift_type(column_type: Any) -> str:
    """Column class for a column type, ``TextColumn`` when unknown."""
    return _COLUMN_CLASSES.get(str(column_type), "TextColumn")


def drift_type_call(column_type: Any) -> str:
    """Builder call name for a column type, ``text`` when unknown."""
    column_type = str(column_type)
    return column_type if column_type in _COLUMN_CLASSES else "text"


def _primary_key(table: Any) -> Optional[Mapping[str, Any]]:
    if not isinstance(table, Mapping):
        return None
    return next(
        (column for column in table.get("columns") or [] if column.get("primaryKey")),
        None,
    )


def primary_key_type(table: Any) -> str:
    column = _primary_key(table)
    if column is None:
        return "int"
    return _COLUMN_DART_TYPES.get(str(column.get("type")), "dynamic")


def primary_key_column(table: Any) -> str:
    column = _primary_key(table)
    return camel_case(column["name"]) if column is not None else "id"


def needs_primary_key_override(table: Any) -> bool:
    """Auto-increment columns are primary keys already; anything else is declared."""
    column = _primary_key(table)
    return column is not None and not column.get("autoIncrement")


def drift_column(column: Any) -> str:
    """Build the column builder chain, without the closing ``()``.

    ``{"name": "title", "type": "text", "unique": True}`` becomes
    ``text().unique()``.
    """
    call = drift_type_call(column.get("type"))
    if column.get("primaryKey") and column.get("autoIncrement"):
        return f"{call}().autoIncrement()"

    chain = [f"{call}()"]
    if column.get("nullable"):
        chain.append(".nullable()")
    if column.get("unique"):
        chain.append(".unique()")
    if column.get("defaultValue") is not None:
        chain.append(f".withDefault(const Constant({json.dumps(column['defaultValue'])}))")
    references = column.get("references")
    if references:
        reference = (
            f".references({_pascal(references['table'])}Table, "
            f"#{camel_case(references['column'])}"
        )
        if references.get("onDelete"):
            reference += f", onDelete: KeyAction.{references['onDelete']}"
        chain.append(reference + ")")
    return "".join(chain)


def _pascal(value: str) -> str:
    name = camel_case(value)
    return name[:1].upper() + name[1:]


DRIFT_HELPERS = {
    "driftType": drift_type,
    "driftTypeCall": drift_type_call,
    "driftColumn": drift_column,
    "primaryKeyType": primary_key_type,
    "primaryKeyColumn": primary_key_column,
    "needsPrimaryKeyOverride": needs_primary_key_override,
}


# ---------------------------------------------------------------------------
# Template sources
# ---------------------------------------------------------------------------

DATABASE_SOURCE = """\
// GENERATED CODE - DO NOT MODIFY BY HAND
// Database: {{databaseName}}
// Schema Version: {{schemaVersion}}

import 'dart:io';

import 'package:drift/drift.dart';
{{#if encryption}}
import 'package:drift/native.dart' as native;
{{else}}
import 'package:drift/native.dart';
{{/if}}
{{#if webWorker}}
import 'package:drift/wasm.dart';
{{/if}}
import 'package:flutter/foundation.dart';
import 'package:path/path.dart' as p;
import 'package:path_provider/path_provider.dart';
{{#if encryption}}
import 'package:sqlcipher_flutter_libs/sqlcipher_flutter_libs.dart';

import 'key_manager.dart';
{{/if}}

{{#each tables}}
part '{{snakeCase name}}_table.dart';
{{/each}}
{{#each tables}}
part '{{snakeCase name}}_dao.dart';
{{/each}}
part '{{snakeCase databaseName}}.g.dart';

@DriftDatabase(
  tables: [{{#each tables}}{{pascalCase name}}Table{{#unless @last}}, {{/unless}}{{/each}}],
  daos: [{{#each tables}}{{pascalCase name}}Dao{{#unless @last}}, {{/unless}}{{/each}}],
)
class {{pascalCase databaseName}} extends _${{pascalCase databaseName}} {
  {{pascalCase databaseName}}() : super(_openConnection());

  {{pascalCase databaseName}}.forTesting(super.e);

  @override
  int get schemaVersion => {{schemaVersion}};

  @override
  MigrationStrategy get migration {
    return MigrationStrategy(
      onCreate: (m) async {
        await m.createAll();
      },
{{#if enableMigrations}}
      onUpgrade: (m, from, to) async {
        await m.createAll();
      },
{{/if}}
      beforeOpen: (details) async {
        await customStatement('PRAGMA foreign_keys = ON');
      },
    );
  }
}

QueryExecutor _openConnection() {
  if (kIsWeb) {
    return _openWebConnection();
  }
  return _openNativeConnection();
}

{{#if webWorker}}
QueryExecutor _openWebConnection() {
  return DatabaseConnection.delayed(Future(() async {
    final result = await WasmDatabase.open(
      databaseName: '{{databaseName}}',
      sqlite3Uri: Uri.parse('sqlite3.wasm'),
      driftWorkerUri: Uri.parse('drift_worker.js'),
    );
    if (result.missingFeatures.isNotEmpty) {
      debugPrint('Missing features: ${result.missingFeatures}');
    }
    return result.resolvedExecutor;
  }));
}
{{else}}
QueryExecutor _openWebConnection() {
  throw UnsupportedError('Web support requires webWorker to be enabled');
}
{{/if}}

QueryExecutor _openNativeConnection() {
  return LazyDatabase(() async {
    final dbFolder = await getApplicationDocumentsDirectory();
    final file = File(p.join(dbFolder.path, '{{databaseName}}.db'));
{{#if encryption}}
    final key = await DatabaseKeyManager().getKey();
    return native.NativeDatabase.createInBackground(
      file,
      setup: (rawDb) {
        rawDb.execute("PRAGMA key = '$key'");
      },
    );
{{else}}
    return NativeDatabase.createInBackground(file);
{{/if}}
  });
}
"""

KEY_MANAGER_SOURCE = """\
// GENERATED CODE - DO NOT MODIFY BY HAND
// Key manager for the {{databaseName}} database

import 'dart:convert';
import 'dart:math';

import 'package:flutter_secure_storage/flutter_secure_storage.dart';

/// How the SQLCipher key is obtained.
enum KeyStrategy {
  derived,
  stored,
  userProvided,
}

/// Manages the encryption key of the database.
class DatabaseKeyManager {
  DatabaseKeyManager({
    this.strategy = KeyStrategy.{{camelCase encryptionKeyStrategy}},
    FlutterSecureStorage? secureStorage,
  }) : _secureStorage = secureStorage ?? const FlutterSecureStorage();

  static const String _keyStorageKey = '{{databaseName}}_db_key';

  final KeyStrategy strategy;
  final FlutterSecureStorage _secureStorage;
  String? _cachedKey;

  Future<String> getKey() async {
    final cached = _cachedKey;
    if (cached != null) {
      return cached;
    }
    if (strategy != KeyStrategy.stored) {
      throw StateError('Call setKey() before opening the database');
    }
    final stored = await _secureStorage.read(key: _keyStorageKey);
    if (stored != null) {
      return _cachedKey = stored;
    }
    final random = Random.secure();
    final bytes = List<int>.generate(32, (_) => random.nextInt(256));
    final key = base64UrlEncode(bytes);
    await _secureStorage.write(key: _keyStorageKey, value: key);
    return _cachedKey = key;
  }

  void setKey(String key) {
    _cachedKey = key;
  }
}
"""

TABLE_SOURCE = """\
// GENERATED CODE - DO NOT MODIFY BY HAND
// Table: {{table.name}}

part of '{{snakeCase databaseName}}.dart';

/// {{pascalCase table.name}} table
@DataClassName('{{pascalCase table.name}}')
class {{pascalCase table.name}}Table extends Table {
{{#each table.columns}}
  {{driftType type}} get {{camelCase name}} => {{driftColumn this}}();
{{/each}}
{{#if table.timestamps}}
  DateTimeColumn get createdAt => dateTime().withDefault(currentDateAndTime)();
  DateTimeColumn get updatedAt => dateTime().withDefault(currentDateAndTime)();
{{/if}}
{{#if table.softDelete}}
  DateTimeColumn get deletedAt => dateTime().nullable()();
{{/if}}
{{#needsPrimaryKeyOverride table}}

  @override
  Set<Column> get primaryKey => { {{primaryKeyColumn table}} };
{{/needsPrimaryKeyOverride}}
}
"""

DAO_SOURCE = """\
// GENERATED CODE - DO NOT MODIFY BY HAND
// DAO: {{pascalCase table.name}}Dao

part of '{{snakeCase databaseName}}.dart';

@DriftAccessor(tables: [{{pascalCase table.name}}Table])
class {{pascalCase table.name}}Dao extends DatabaseAccessor<{{pascalCase databaseName}}>
    with _${{pascalCase table.name}}DaoMixin {
  {{pascalCase table.name}}Dao(super.db);

  Future<List<{{pascalCase table.name}}>> getAll() {
{{#if table.softDelete}}
    return (select({{camelCase table.name}}Table)..where((t) => t.deletedAt.isNull())).get();
{{else}}
    return select({{camelCase table.name}}Table).get();
{{/if}}
  }

  Stream<List<{{pascalCase table.name}}>> watchAll() {
{{#if table.softDelete}}
    return (select({{camelCase table.name}}Table)..where((t) => t.deletedAt.isNull())).watch();
{{else}}
    return select({{camelCase table.name}}Table).watch();
{{/if}}
  }

  Future<{{pascalCase table.name}}?> getById({{primaryKeyType table}} id) {
    return (select({{camelCase table.name}}Table)
          ..where((t) => t.{{primaryKeyColumn table}}.equals(id)))
        .getSingleOrNull();
  }

  Future<int> insertEntry(Insertable<{{pascalCase table.name}}> entry) {
    return into({{camelCase table.name}}Table).insert(entry);
  }

  Future<bool> updateEntry(Insertable<{{pascalCase table.name}}> entry) {
    return update({{camelCase table.name}}Table).replace(entry);
  }

  Future<int> deleteById({{primaryKeyType table}} id) {
{{#if table.softDelete}}
    return (update({{camelCase table.name}}Table)
          ..where((t) => t.{{primaryKeyColumn table}}.equals(id)))
        .write({{pascalCase table.name}}TableCompanion(deletedAt: Value(DateTime.now())));
{{else}}
    return (delete({{camelCase table.name}}Table)
          ..where((t) => t.{{primaryKeyColumn table}}.equals(id)))
        .go();
{{/if}}
  }
}
"""

DRIFT_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="drift-database",
        name="Drift Database",
        description="Database class with native and WASM connections",
        source=DATABASE_SOURCE,
        output=TemplateOutput(
            path="lib/core/database", filename="{{snakeCase databaseName}}", extension="dart"
        ),
    ),
    Template(
        id="drift-key-manager",
        name="Drift Key Manager",
        description="SQLCipher key handling, rendered when encryption is on",
        source=KEY_MANAGER_SOURCE,
        output=TemplateOutput(path="lib/core/database", filename="key_manager", extension="dart"),
        conditions=[
            TemplateCondition(field="encryption", operator=ConditionOperator.EQ, value=True),
        ],
        requires=["drift-database"],
    ),
)

TABLE_TEMPLATE = Template(
    id="drift-table",
    name="Drift Table",
    source=TABLE_SOURCE,
    output=TemplateOutput(
        path="lib/core/database", filename="{{snakeCase table.name}}_table", extension="dart"
    ),
    requires=["drift-database"],
)

DAO_TEMPLATE = Template(
    id="drift-dao",
    name="Drift DAO",
    source=DAO_SOURCE,
    output=TemplateOutput(
        path="lib/core/database", filename="{{snakeCase table.name}}_dao", extension="dart"
    ),
    requires=["drift-table"],
)


def check_config(config: Mapping[str, Any]) -> None:
    """Reject configurations the templates cannot render.

    Raises:
        ValueError: On a missing database name, an unknown key strategy or a
            table without a name or columns.
    """
    if not config.get("databaseName"):
        raise ValueError("Database name is required")
    if config.get("encryption") and config.get("encryptionKeyStrategy") not in KEY_STRATEGIES:
        raise ValueError(
            "Encryption key strategy must be one of: " + ", ".join(KEY_STRATEGIES)
        )
    for table in config.get("tables") or []:
        if not table.get("name"):
            raise ValueError("Every table needs a name")
        if not table.get("columns"):
            raise ValueError(f"Table {table['name']} has no columns")


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------


class DriftModule(Module):
    """SQLite + WASM + OPFS offline storage with optional encryption."""

    id: str = "drift"
    name: str = "Drift Database"
    version: str = "2.14.0"
    description: str = "SQLite + WASM + OPFS offline storage with optional encryption"
    default_config: dict[str, Any] = Field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    templates: list[Template] = Field(default_factory=lambda: list(DRIFT_TEMPLATES))

    async def before_generate(self, ctx: HookContext) -> None:
        check_config(ctx.config)
        for name, helper in DRIFT_HELPERS.items():
            ctx.template_engine.register_helper(name, helper)

    async def on_generate(self, ctx: HookContext) -> list[GeneratedFile]:
        files: list[GeneratedFile] = []
        for table in ctx.config.get("tables") or []:
            context = TemplateContext(
                project=ctx.project,
                module=self,
                data={**ctx.config, "table": table},
            )
            for template in (TABLE_TEMPLATE, DAO_TEMPLATE):
                rendered = ctx.template_engine.render_template(template, context)
                if rendered is not None:
                    files.append(
                        GeneratedFile(path=rendered.path, content=rendered.content, module=self.id)
                    )
        return files
