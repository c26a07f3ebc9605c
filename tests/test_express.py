"""Tests for the call-site (Express-style) extractor."""

from repolens.analyzers.backends.base import FIELDS_NOT_PARSED, dedupe_routes
from repolens.analyzers.backends.express import (
    INLINE_HANDLER,
    ExpressExtractor,
    exported_methods,
    extract_routes_from_text,
    normalize_handler,
    prisma_models,
    schema_fields,
)
from repolens.analyzers.models import Route


class TestNormalizeHandler:
    def test_member_access(self):
        assert normalize_handler("userController.list") == "list"

    def test_require_wrapping(self):
        assert normalize_handler("require('./controllers/user').show") == "show"
        assert normalize_handler("require('./routes/users')") == "users"

    def test_middleware_then_handler(self):
        assert normalize_handler("auth, validate, ctrl.create") == "create"

    def test_wrapped_handler(self):
        assert normalize_handler("asyncHandler(ctrl.list") == "list"
        assert normalize_handler("asyncHandler(ctrl.list)") == "list"

    def test_inline_functions(self):
        assert normalize_handler("(req, res") == INLINE_HANDLER
        assert normalize_handler("async (req, res") == INLINE_HANDLER
        assert normalize_handler("function (req, res") == INLINE_HANDLER

    def test_bare_identifier(self):
        assert normalize_handler("listUsers") == "listUsers"


class TestExtractRoutesFromText:
    def test_router_call_sites(self):
        text = """
            router.get('/users', userController.list);
            router.post("/users", auth, userController.create);
            app.delete(`/users/:id`, userController.remove);
        """
        routes = extract_routes_from_text(text, "routes/users.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("GET", "/users", "list"),
            ("POST", "/users", "create"),
            ("DELETE", "/users/:id", "remove"),
        ]
        assert all(r.source_file == "routes/users.js" for r in routes)

    def test_http_clients_are_not_routes(self):
        text = "axios.get('/api/users', config); http.get('http://x', cb); api.post('/x', body);"
        assert extract_routes_from_text(text, "client.js") == []

    def test_chained_route(self):
        text = "router.route('/items').get(items.list).post(items.create);"
        routes = extract_routes_from_text(text, "routes/items.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("GET", "/items", "list"),
            ("POST", "/items", "create"),
        ]

    def test_middleware_calls_before_handler(self):
        text = """
            router.get('/users', auth(), userController.list);
            router.post('/x', validate(schema), ctrl.create)
            router.put('/x/:id', [auth(), limit({ max: 5 })], asyncHandler(ctrl.update));
        """
        routes = extract_routes_from_text(text, "routes/users.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("GET", "/users", "list"),
            ("POST", "/x", "create"),
            ("PUT", "/x/:id", "update"),
        ]

    def test_non_path_first_argument_is_not_a_route(self):
        text = """
            const port = config.get('port', 3000);
            cache.get('key', v);
            settings.all("users", cb);
            app.get('*', spa.index);
        """
        routes = extract_routes_from_text(text, "server.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [("GET", "*", "index")]

    def test_chained_route_with_middleware(self):
        text = "router.route('/items/:id').get(auth(), items.show).delete(validate(schema), items.remove);"
        routes = extract_routes_from_text(text, "routes/items.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("GET", "/items/:id", "show"),
            ("DELETE", "/items/:id", "remove"),
        ]

    def test_mounts_are_all_routes(self):
        text = """
            app.use('/api/users', require('./routes/users'));
            app.use('/admin', adminRouter);
        """
        routes = extract_routes_from_text(text, "app.js")
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("ALL", "/api/users", "users"),
            ("ALL", "/admin", "adminRouter"),
        ]


class TestDedupeRoutes:
    def test_first_by_sorted_file_wins(self):
        routes = [
            Route("GET", "/a", "second", "routes/b.js"),
            Route("GET", "/a", "first", "routes/a.js"),
            Route("POST", "/a", "create", "routes/b.js"),
        ]
        kept = dedupe_routes(routes)
        assert [(r.method, r.handler) for r in kept] == [("GET", "first"), ("POST", "create")]

    def test_idempotent(self):
        routes = [
            Route("GET", "/b", "h1", "x.js"),
            Route("GET", "/a", "h2", "x.js"),
            Route("GET", "/b", "h3", "y.js"),
        ]
        once = dedupe_routes(routes)
        assert dedupe_routes(once) == once


class TestExportedMethods:
    def test_module_exports_object(self):
        text = """
            module.exports = {
              list,
              show: async (req, res) => {},
              create(req, res) { return 1; },
              ...helpers,
            };
        """
        assert exported_methods(text) == ["list", "show", "create"]

    def test_exports_assignments_and_es_exports(self):
        text = """
            exports.list = (req, res) => {};
            export async function update(req, res) {}
            export const remove = () => {};
            export { archive as archiveUser };
        """
        assert exported_methods(text) == ["list", "update", "remove", "archiveUser"]

    def test_default_class(self):
        text = """
            class UserController {
              async index(req, res) {
                if (x) { return; }
              }
              show(req, res) {
              }
            }
            module.exports = UserController;
        """
        assert exported_methods(text) == ["UserController", "index", "show"]


class TestSchemaFields:
    def test_mongoose_schema(self):
        text = """
            const UserSchema = new mongoose.Schema({
              name: { type: String, required: true },
              email: String,
              roles: [String],
            });
            module.exports = mongoose.model('User', UserSchema);
        """
        assert schema_fields(text) == ["name", "email", "roles"]

    def test_sequelize_define(self):
        text = "const Post = sequelize.define('Post', { title: DataTypes.STRING, body: DataTypes.TEXT });"
        assert schema_fields(text) == ["title", "body"]

    def test_typeorm_columns(self):
        text = """
            @Entity()
            export class Order {
              @PrimaryGeneratedColumn() id: number;
              @Column({ nullable: true }) note?: string;
            }
        """
        assert schema_fields(text) == ["id", "note"]

    def test_prisma(self):
        text = "model User {\n  id Int @id\n  email String\n  @@index([email])\n}\n"
        models = prisma_models(text, "prisma/schema.prisma")
        assert models[0].name == "User"
        assert models[0].schema_summary == "id, email"


class TestExpressExtractor:
    def test_users_scenario(self, express_project):
        extractor = ExpressExtractor(express_project)
        routes = extractor.extract_routes()
        assert [r.to_dict() for r in routes if r.method == "GET"] == [
            {"method": "GET", "path": "/users", "handler": "list", "sourceFile": "routes/users.js"},
        ]
        controllers = extractor.extract_controllers()
        assert controllers[0].name == "userController"
        assert controllers[0].methods == ["list"]

    def test_matches_needs_package_json(self, express_project, make_tree):
        assert ExpressExtractor.matches(express_project)
        assert not ExpressExtractor.matches(make_tree({"main.py": ""}))

    def test_extraction_is_stable(self, express_project):
        first = ExpressExtractor(express_project).extract_routes()
        second = ExpressExtractor(express_project).extract_routes()
        assert first == second

    def test_controller_without_exports_qualifies_by_name(self, make_tree):
        root = make_tree({
            "package.json": {},
            "controllers/emptyController.js": "// todo\n",
            "controllers/helpers.js": "// nothing exported\n",
        })
        names = [c.name for c in ExpressExtractor(root).extract_controllers()]
        assert names == ["emptyController"]

    def test_models(self, make_tree):
        root = make_tree({
            "package.json": {},
            "models/user.js": """\
                const schema = new Schema({ name: String, age: Number });
                module.exports = model('User', schema);
            """,
            "models/legacy.js": "module.exports = mongoose.model('Legacy', buildSchema());\n",
            "models/readme.js": "// nothing to see\n",
            "prisma/schema.prisma": "model Order {\n  id Int @id\n}\n",
        })
        models = {m.name: m for m in ExpressExtractor(root).extract_models()}
        assert models["User"].schema_summary == "name, age"
        assert models["Legacy"].schema_summary == FIELDS_NOT_PARSED
        assert models["Order"].file == "prisma/schema.prisma"
        assert "readme" not in models
