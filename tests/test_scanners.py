"""Tests for the lexical file scanners."""

import pytest

from blastradius.models import EventRef, ImportRef
from blastradius.scanners import (
    ClassFileScanner,
    ComponentFileScanner,
    PythonScanner,
    ScriptScanner,
    scanner_for,
)


class TestScannerRegistry:
    """Extension based scanner selection."""

    @pytest.mark.parametrize("path,expected", [
        ("src/App.vue", ComponentFileScanner),
        ("src/Page.svelte", ComponentFileScanner),
        ("src/main.ts", ScriptScanner),
        ("src/index.JSX", ScriptScanner),
        ("Services/X.cs", ClassFileScanner),
        ("src/main/java/X.java", ClassFileScanner),
        ("app/main.py", PythonScanner),
    ])
    def test_known_extensions(self, path, expected):
        """Test scanner selection for each supported extension."""
        assert isinstance(scanner_for(path), expected)

    def test_unknown_extension(self):
        """Test that unsupported files get no scanner."""
        assert scanner_for("README.md") is None
        assert scanner_for("Makefile") is None

    def test_custom_scanner_list(self):
        """Test selecting from a caller-supplied scanner list."""
        only_python = [PythonScanner()]
        assert scanner_for("a.py", only_python) is only_python[0]
        assert scanner_for("a.ts", only_python) is None


class TestScriptScanner:
    """JavaScript and TypeScript."""

    SOURCE = """
import axios from 'axios'
import { ref, computed as c } from 'vue'
import * as utils from './utils'
import type { Cart } from './types'
import './styles.css'
const lodash = require('lodash')

export const cartStore = defineStore('cart', {})
export function addItem(item) {
  store.dispatch('cart/add', item)
  commit('setBusy', true)
  emit('added', item)
  return axios.post('/api/cart', item)
}
export { helper, other as renamed }
fetch('/api/health')
"""

    def test_imports(self):
        """Test ES imports, require calls and side-effect imports."""
        insight = ScriptScanner().scan("src/cart.ts", self.SOURCE)
        assert ImportRef("axios", "import", "axios") in insight.imports
        assert ImportRef("ref", "import", "vue") in insight.imports
        assert ImportRef("computed", "import", "vue") in insight.imports
        assert ImportRef("utils", "import", "./utils") in insight.imports
        assert ImportRef("lodash", "import", "lodash") in insight.imports
        assert "./styles.css" in insight.import_sources()
        assert "./types" not in insight.import_sources()

    def test_calls_events_and_store(self):
        """Test HTTP calls, emitted events and store actions."""
        insight = ScriptScanner().scan("src/cart.ts", self.SOURCE)
        assert "/api/cart" in insight.api_calls
        assert "/api/health" in insight.api_calls
        assert EventRef("emit", "added") in insight.events
        assert insight.store_actions == ["cart/add", "setBusy"]

    def test_exports_and_archetype(self):
        """Test exported names and the store archetype."""
        insight = ScriptScanner().scan("src/cart.ts", self.SOURCE)
        assert insight.exports[:2] == ["cartStore", "addItem"]
        assert "helper" in insight.exports
        assert "other" in insight.exports
        assert insight.component_type == "State Store"

    def test_duplicates_recorded_once(self):
        """Test that repeated imports and calls are deduplicated."""
        source = "import a from './a'\nimport a from './a'\nfetch('/x')\nfetch('/x')\n"
        insight = ScriptScanner().scan("m.js", source)
        assert len(insight.imports) == 1
        assert insight.api_calls == ["/x"]

    def test_test_suite_archetype(self):
        """Test that spec files are tagged as test suites."""
        insight = ScriptScanner().scan("cart.test.ts", "describe('cart', () => {})")
        assert insight.component_type == "Test Suite"


class TestComponentFileScanner:
    """Vue and Svelte single-file components."""

    VUE = """
<template>
  <Modal v-if="open" @close="open = false">
    <UserForm v-model="user" v-on:submit="save" />
    <slot name="footer" />
  </Modal>
</template>

<script>
import UserForm from './UserForm.vue'
import { saveUser } from '@/api/users'

export default {
  props: ['user'],
  methods: {
    async save() {
      try {
        await saveUser(this.user)
        this.$emit('saved')
      } catch (e) {
        this.error = e
      }
    },
  },
}
</script>

<style scoped>
.Modal { color: red; }
</style>
"""

    def test_script_block_is_scanned(self):
        """Test that the embedded script block goes through the script scanner."""
        insight = ComponentFileScanner().scan("src/UserDialog.vue", self.VUE)
        assert ImportRef("UserForm", "import", "./UserForm.vue") in insight.imports
        assert "@/api/users" in insight.import_sources()
        assert EventRef("emit", "saved") in insight.events
        assert insight.component_type == "UI Component"

    def test_template_children_and_listeners(self):
        """Test child components, listeners and v-model bindings in the template."""
        insight = ComponentFileScanner().scan("src/UserDialog.vue", self.VUE)
        names = insight.imported_names()
        assert "Modal" in names
        assert names.count("UserForm") == 1
        assert ImportRef("Modal", "component") in insight.imports
        assert EventRef("listener", "close") in insight.events
        assert EventRef("listener", "submit") in insight.events
        assert 'Two-way binding: v-model="user"' in insight.functionality

    def test_functionality_tags(self):
        """Test keyword-based functionality tags."""
        insight = ComponentFileScanner().scan("src/UserDialog.vue", self.VUE)
        for tag in (
            "Modal/Dialog component",
            "Form handling",
            "Event emission",
            "Receives props from parent",
            "Uses slots for content injection",
            "Error handling",
        ):
            assert tag in insight.functionality

    def test_svelte_markup_outside_script(self):
        """Test Svelte markup that lives outside any template block."""
        source = (
            "<script>\n  import Row from './Row.svelte'\n  export let items = []\n</script>\n"
            "<ul>{#each items as item}<Row {item} on:select={pick} />{/each}</ul>\n"
            "<input bind:value={query} />\n"
        )
        insight = ComponentFileScanner().scan("src/List.svelte", source)
        assert ImportRef("Row", "import", "./Row.svelte") in insight.imports
        assert EventRef("listener", "select") in insight.events
        assert insight.component_type == "UI Component"


class TestClassFileScanner:
    """C# and Java."""

    CSHARP = """
using System;
using Billing.Services;

namespace Billing.Controllers
{
    [Route("api/invoices")]
    public class InvoiceController : ControllerBase, IDisposable
    {
        [HttpGet("{id}")]
        public IActionResult Get(int id) => Ok();

        [HttpPost]
        public IActionResult Create() => Ok();
    }
}
"""

    JAVA = """
package com.acme.billing;

import com.acme.billing.model.Invoice;
import java.util.List;

@RestController
public class InvoiceResource extends BaseResource implements Auditable, Comparable<InvoiceResource> {
    @GetMapping("/invoices")
    public List<Invoice> list() { return null; }

    @PostMapping(value = "/invoices")
    public Invoice create() { return null; }
}
"""

    def test_csharp(self):
        """Test usings, base types and route attributes in C#."""
        insight = ClassFileScanner().scan("Controllers/InvoiceController.cs", self.CSHARP)
        assert ImportRef("System", "using") in insight.imports
        assert ImportRef("Billing.Services", "using") in insight.imports
        assert insight.exports == ["InvoiceController"]
        assert ImportRef("ControllerBase", "inherits") in insight.imports
        assert ImportRef("IDisposable", "inherits") in insight.imports
        assert insight.api_calls == ["GET {id}", "POST /"]
        assert insight.component_type == "API Controller"

    def test_csharp_generic_base_types(self):
        """Test splitting generic base type lists."""
        source = "public class Repo<T> : BaseRepository<T, int>, IRepo<T> where T : class { }"
        insight = ClassFileScanner().scan("Data/Repo.cs", source)
        inherited = [ref.name for ref in insight.imports if ref.kind == "inherits"]
        assert inherited == ["BaseRepository<T, int>", "IRepo<T>"]
        assert insight.component_type == "Repository"

    def test_java(self):
        """Test imports, extends/implements and mappings in Java."""
        insight = ClassFileScanner().scan("src/InvoiceResource.java", self.JAVA)
        assert ImportRef("com.acme.billing.model.Invoice", "import") in insight.imports
        assert insight.exports == ["InvoiceResource"]
        assert ImportRef("BaseResource", "inherits") in insight.imports
        assert ImportRef("Auditable", "inherits") in insight.imports
        assert ImportRef("Comparable<InvoiceResource>", "inherits") in insight.imports
        assert insight.api_calls == ["GET /invoices", "POST /invoices"]

    def test_class_imports_carry_no_edge_source(self):
        """Test that namespace imports do not become file edges."""
        insight = ClassFileScanner().scan("Controllers/InvoiceController.cs", self.CSHARP)
        assert insight.import_sources() == []


class TestPythonScanner:
    """Python modules."""

    SOURCE = '''
import os
import requests
from fastapi import APIRouter
from .models import Invoice, Payment as P
from . import utils
from ..shared.db import session_scope

router = APIRouter()


@router.get("/invoices/{invoice_id}")
def get_invoice(invoice_id: int):
    return requests.get("https://ledger.internal/invoices").json()


class InvoiceApi:
    @router.post("/invoices")
    async def create(self):
        return None


def _private():
    pass
'''

    def test_imports_with_relative_sources(self):
        """Test absolute and relative Python imports."""
        insight = PythonScanner().scan("app/api/invoices.py", self.SOURCE)
        assert ImportRef("os", "import", "os") in insight.imports
        assert ImportRef("APIRouter", "import", "fastapi") in insight.imports
        assert ImportRef("Invoice", "import", "./models") in insight.imports
        assert ImportRef("Payment", "import", "./models") in insight.imports
        assert ImportRef("utils", "import", "./utils") in insight.imports
        assert ImportRef("session_scope", "import", "../shared/db") in insight.imports

    def test_routes_calls_and_exports(self):
        """Test FastAPI routes, outbound requests and public exports."""
        insight = PythonScanner().scan("app/api/invoices.py", self.SOURCE)
        assert "GET /invoices/{invoice_id}" in insight.api_calls
        assert "POST /invoices" in insight.api_calls
        assert "https://ledger.internal/invoices" in insight.api_calls
        assert insight.exports == ["get_invoice", "InvoiceApi"]
        assert insight.component_type == "API Controller"

    def test_flask_route_methods(self):
        """Test Flask routes with several methods."""
        source = (
            "from flask import Flask\napp = Flask(__name__)\n\n"
            "@app.route('/pay', methods=['POST', 'PUT'])\ndef pay():\n    return ''\n"
        )
        insight = PythonScanner().scan("app.py", source)
        assert insight.api_calls == ["POST /pay", "PUT /pay"]

    def test_syntax_error_falls_back_to_regex(self):
        """Test import extraction from a module that does not parse."""
        source = "from .billing import charge, refund\nimport json\ndef broken(:\n"
        insight = PythonScanner().scan("pkg/tasks.py", source)
        assert ImportRef("charge", "import", "./billing") in insight.imports
        assert ImportRef("refund", "import", "./billing") in insight.imports
        assert ImportRef("json", "import", "json") in insight.imports
        assert insight.exports == []
