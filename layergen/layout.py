# File: layergen/layout.py
"""
LayerGen - Artifact Layout
============================

Every path the generators write and the rollback engine deletes, computed
from a ``NamingSet`` only.  Paths are POSIX strings relative to the
application root.

    layers/<layer>/collections/<plural>/
        app/components/_Form.vue
        app/components/List.vue
        app/components/<Item>/{Input,Select,CardMini}.vue
        app/composables/use<PrefixedPlural>.ts
        server/api/teams/[id]/<api-path>/index.get.ts
        server/api/teams/[id]/<api-path>/index.post.ts
        server/api/teams/[id]/<api-path>/[<singular>Id].patch.ts
        server/api/teams/[id]/<api-path>/[<singular>Id].delete.ts
        server/api/teams/[id]/<api-path>/[<singular>Id]/move.patch.ts
        server/api/teams/[id]/<api-path>/reorder.patch.ts
        server/database/schema.ts
        server/database/queries.ts
        server/database/seed.ts
        types.ts
        nuxt.config.ts
        .layergen.json
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from layergen.naming import NamingSet

logger: logging.Logger = logging.getLogger("layergen.layout")

MANIFEST_NAME: str = ".layergen.json"
SUB_COMPONENT_PARTS: Tuple[str, ...] = ("Input", "Select", "CardMini")

# Registry files, relative to the application root.
APP_CONFIG_FILE: str = "nuxt.config.ts"
SCHEMA_INDEX_FILE: str = "server/db/schema.ts"
UI_REGISTRY_FILE: str = "app/app.config.ts"

# What generation added to the registry files (created files, inserted properties).
REGISTRY_STATE_FILE: str = ".layergen-registry.json"


@dataclass(frozen=True)
class ArtifactLayout:
    """Path layout of one target."""

    naming: NamingSet

    # -- directories -----------------------------------------------------

    @property
    def layer_root(self) -> str:
        return f"layers/{self.naming.layer_kebab}"

    @property
    def collection_root(self) -> str:
        return f"{self.layer_root}/collections/{self.naming.plural_kebab}"

    @property
    def components_dir(self) -> str:
        return f"{self.collection_root}/app/components"

    @property
    def api_dir(self) -> str:
        return f"{self.collection_root}/server/api/teams/[id]/{self.naming.api_path_segment}"

    @property
    def database_dir(self) -> str:
        return f"{self.collection_root}/server/database"

    # -- files -------------------------------------------------------------

    @property
    def form(self) -> str:
        return f"{self.components_dir}/_Form.vue"

    @property
    def listing(self) -> str:
        return f"{self.components_dir}/List.vue"

    @property
    def composable(self) -> str:
        return f"{self.collection_root}/app/composables/{self.naming.composable_name}.ts"

    @property
    def handler_get(self) -> str:
        return f"{self.api_dir}/index.get.ts"

    @property
    def handler_post(self) -> str:
        return f"{self.api_dir}/index.post.ts"

    @property
    def handler_patch(self) -> str:
        return f"{self.api_dir}/[{self.naming.id_param}].patch.ts"

    @property
    def handler_delete(self) -> str:
        return f"{self.api_dir}/[{self.naming.id_param}].delete.ts"

    @property
    def handler_move(self) -> str:
        return f"{self.api_dir}/[{self.naming.id_param}]/move.patch.ts"

    @property
    def handler_reorder(self) -> str:
        return f"{self.api_dir}/reorder.patch.ts"

    @property
    def schema(self) -> str:
        return f"{self.database_dir}/schema.ts"

    @property
    def queries(self) -> str:
        return f"{self.database_dir}/queries.ts"

    @property
    def seed(self) -> str:
        return f"{self.database_dir}/seed.ts"

    @property
    def types(self) -> str:
        return f"{self.collection_root}/types.ts"

    @property
    def collection_config(self) -> str:
        return f"{self.collection_root}/nuxt.config.ts"

    @property
    def manifest(self) -> str:
        return f"{self.collection_root}/{MANIFEST_NAME}"

    @property
    def layer_config(self) -> str:
        return f"{self.layer_root}/nuxt.config.ts"

    def sub_component(self, field_name: str, part: str) -> str:
        return f"{self.components_dir}/{self.naming.sub_component_dir(field_name)}/{part}.vue"

    def sub_components(self, field_name: str) -> List[str]:
        return [self.sub_component(field_name, part) for part in SUB_COMPONENT_PARTS]

    # -- aggregates ----------------------------------------------------------

    def fixed_paths(self) -> List[str]:
        """
        Every artifact path predictable from names alone, including the
        optional ones (hierarchy handlers, seed).  Sub-components depend on
        the schema and are recovered from the manifest instead.
        """
        return [
            self.form,
            self.listing,
            self.composable,
            self.handler_get,
            self.handler_post,
            self.handler_patch,
            self.handler_delete,
            self.handler_move,
            self.handler_reorder,
            self.schema,
            self.queries,
            self.seed,
            self.types,
            self.collection_config,
        ]


def layout_for(naming: NamingSet) -> ArtifactLayout:
    return ArtifactLayout(naming)


__all__: List[str] = [
    "MANIFEST_NAME",
    "SUB_COMPONENT_PARTS",
    "APP_CONFIG_FILE",
    "SCHEMA_INDEX_FILE",
    "UI_REGISTRY_FILE",
    "REGISTRY_STATE_FILE",
    "ArtifactLayout",
    "layout_for",
]
