"""Test cases for DocumentPatcher - single-value edits of YAML documents."""

import textwrap
import pytest
import yaml
from releasetool.core.models import PatchTarget
from releasetool.core.exceptions import TargetNotFound, MalformedDocument
from releasetool.patch.document import StructuredDocument
from releasetool.patch.patcher import DocumentPatcher
from sample_values import UI_VALUES, CATALOG_VALUES


def doc_of(text: str) -> StructuredDocument:
    return StructuredDocument.from_text(textwrap.dedent(text), source='values.yaml')


class TestFirstOccurrence:
    """The first image section is patched, later ones are left alone."""

    @pytest.fixture
    def patcher(self):
        return DocumentPatcher()

    def test_repository_of_first_image(self, patcher):
        """Two image sections, only the first repository changes"""
        doc = doc_of("""\
            image:
              repository: A
            mysql:
              image:
                repository: mysql
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'repository'), 'B')

        assert patched.text == textwrap.dedent("""\
            image:
              repository: B
            mysql:
              image:
                repository: mysql
            """)

    def test_dependency_image_untouched(self, patcher):
        """The database image keeps its tag"""
        doc = StructuredDocument.from_text(CATALOG_VALUES)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), '0.4.1')

        assert patched.text == CATALOG_VALUES.replace('tag: 0.4.0', 'tag: 0.4.1')
        assert patched.get(PatchTarget('image', 'tag', occurrence=1)) == '8.0'

    def test_nested_section_first_in_text(self, patcher):
        """Document order decides, not nesting depth"""
        doc = doc_of("""\
            app:
              image:
                tag: a
            image:
              tag: b
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'c')

        assert patched.get(PatchTarget('image', 'tag', 0)) == 'c'
        assert patched.get(PatchTarget('image', 'tag', 1)) == 'b'

    def test_second_occurrence_on_request(self, patcher):
        doc = StructuredDocument.from_text(CATALOG_VALUES)
        patched = patcher.patch(doc, PatchTarget('image', 'tag', occurrence=1), '8.4')

        assert patched.get(PatchTarget('image', 'tag', 0)) == '0.4.0'
        assert 'tag: "8.4"' in patched.text

    def test_missing_field_does_not_fall_through(self, patcher):
        """First section without the field fails, second is never used"""
        doc = doc_of("""\
            image:
              repository: app
            redis:
              image:
                repository: redis
                tag: "7"
            """)
        with pytest.raises(TargetNotFound):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')

    def test_field_one_level_deeper_does_not_count(self, patcher):
        doc = doc_of("""\
            image:
              details:
                tag: old
              repository: app
            """)
        with pytest.raises(TargetNotFound):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'new')

    def test_scalar_image_key_is_not_a_section(self, patcher):
        doc = doc_of("""\
            image: nginx:1.25
            sidecar:
              image:
                tag: a
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'b')

        assert patched.text == textwrap.dedent("""\
            image: nginx:1.25
            sidecar:
              image:
                tag: b
            """)

    def test_multi_document(self, patcher):
        doc = doc_of("""\
            kind: ConfigMap
            data:
              key: value
            ---
            spec:
              image:
                tag: one
            ---
            spec:
              image:
                tag: two
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'three')

        assert 'tag: three' in patched.text
        assert 'tag: two' in patched.text
        assert 'tag: one' not in patched.text


class TestFormatting:
    """Everything except the target value is reproduced verbatim."""

    @pytest.fixture
    def patcher(self):
        return DocumentPatcher()

    def test_comments_and_quotes_preserved(self, patcher):
        doc = StructuredDocument.from_text(UI_VALUES)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'abc1234')

        assert patched.text == UI_VALUES.replace('tag: "0.4.0"', 'tag: "abc1234"')

    def test_plain_value_that_would_change_type_is_quoted(self, patcher):
        """A numeric commit SHA stays a string"""
        doc = doc_of("""\
            image:
              tag: latest
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), '1234567')

        assert patched.text == 'image:\n  tag: "1234567"\n'

    def test_plain_value_stays_plain(self, patcher):
        doc = doc_of("""\
            image:
              tag: latest # moving tag
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'a1b2c3d')

        assert patched.text == 'image:\n  tag: a1b2c3d # moving tag\n'

    def test_single_quoted(self, patcher):
        doc = doc_of("""\
            image:
              tag: 'v1'
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), "it's")

        assert patched.text == "image:\n  tag: 'it''s'\n"

    def test_flow_mapping(self, patcher):
        doc = doc_of("""\
            image: {repository: app, tag: v1}
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')

        assert patched.text == 'image: {repository: app, tag: v2}\n'

    def test_empty_value(self, patcher):
        doc = doc_of("""\
            image:
              tag:
            """)
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')

        assert patched.text == 'image:\n  tag: v1\n'

    def test_crlf_line_endings(self, patcher):
        doc = StructuredDocument.from_text('image:\r\n  tag: a\r\n  x: 1\r\n')
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'b')

        assert patched.text == 'image:\r\n  tag: b\r\n  x: 1\r\n'

    def test_patch_fields_same_section(self, patcher):
        doc = StructuredDocument.from_text(CATALOG_VALUES)
        patched = patcher.patch_fields(doc, 'image', {
            'repository': '123.dkr.ecr.us-east-1.amazonaws.com/catalog',
            'tag': 'f00dbab',
        })

        assert patched.get(PatchTarget('image', 'repository')) == \
            '123.dkr.ecr.us-east-1.amazonaws.com/catalog'
        assert patched.get(PatchTarget('image', 'tag')) == 'f00dbab'
        assert patched.get(PatchTarget('image', 'repository', 1)) == \
            'public.ecr.aws/docker/library/mysql'


class TestIdempotence:
    """Re-applying a patch changes nothing."""

    def test_patch_twice(self):
        patcher = DocumentPatcher()
        target = PatchTarget('image', 'tag')
        once = patcher.patch(StructuredDocument.from_text(UI_VALUES), target, '1234567')
        twice = patcher.patch(once, target, '1234567')

        assert twice.text == once.text
        assert twice is once

    def test_current_value_is_noop(self):
        doc = StructuredDocument.from_text(UI_VALUES)
        assert DocumentPatcher().patch(doc, PatchTarget('image', 'tag'), '0.4.0') is doc

    def test_plain_value_of_another_type_is_requoted(self):
        """tag: 1.10 loads as a float, so the string '1.10' is not current yet"""
        doc = doc_of("""\
            image:
              tag: 1.10
            """)
        patched = DocumentPatcher().patch(doc, PatchTarget('image', 'tag'), '1.10')

        assert patched.text == 'image:\n  tag: "1.10"\n'
        assert yaml.safe_load(patched.text)['image']['tag'] == '1.10'
        assert DocumentPatcher().patch(patched, PatchTarget('image', 'tag'), '1.10') is patched


class TestErrors:
    """Failures surface and leave the input untouched."""

    @pytest.fixture
    def patcher(self):
        return DocumentPatcher()

    def test_no_section(self, patcher):
        text = 'replicaCount: 1\nservice:\n  port: 80\n'
        doc = StructuredDocument.from_text(text)
        with pytest.raises(TargetNotFound):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')
        assert doc.text == text

    def test_occurrence_out_of_range(self, patcher):
        doc = StructuredDocument.from_text(UI_VALUES)
        with pytest.raises(TargetNotFound, match='occurrence 1'):
            patcher.patch(doc, PatchTarget('image', 'tag', occurrence=1), 'v1')

    def test_empty_document(self, patcher):
        with pytest.raises(TargetNotFound):
            patcher.patch(StructuredDocument.from_text(''), PatchTarget('image', 'tag'), 'v1')

    def test_all_or_nothing(self, patcher):
        doc = StructuredDocument.from_text(UI_VALUES)
        with pytest.raises(TargetNotFound):
            patcher.patch_fields(doc, 'image', {'repository': 'x', 'digest': 'sha256:0'})
        assert doc.text == UI_VALUES

    def test_unparseable(self, patcher):
        doc = StructuredDocument.from_text('image: [unclosed\n  tag: a\n')
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')

    def test_error_names_source(self, patcher):
        doc = doc_of('image: {tag: [a, b]}\n')
        with pytest.raises(MalformedDocument, match='values.yaml'):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')

    def test_block_scalar(self, patcher):
        doc = doc_of("""\
            image:
              tag: |
                v1
            """)
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')

    def test_aliased_section(self, patcher):
        doc = doc_of("""\
            base: &img
              repository: shared
            image: *img
            """)
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'repository'), 'mine')

    def test_anchored_section_used_by_later_alias(self, patcher):
        """Patching the anchor would also rewrite the dependency image"""
        text = 'image: &img {repository: app, tag: v1}\nmysql: {image: *img}\n'
        doc = StructuredDocument.from_text(text)
        with pytest.raises(MalformedDocument, match='alias'):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')
        assert doc.text == text

    def test_section_inside_aliased_parent(self, patcher):
        doc = doc_of("""\
            app: &app
              image:
                tag: v1
            worker: *app
            """)
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')

    def test_flow_key_without_value_indicator(self, patcher):
        doc = doc_of('image: {repository: a, tag}\n')
        with pytest.raises(MalformedDocument, match='value indicator'):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')

    def test_flow_key_with_empty_value(self, patcher):
        doc = doc_of('image: {repository: a, tag: }\n')
        patched = patcher.patch(doc, PatchTarget('image', 'tag'), 'v1')

        assert yaml.safe_load(patched.text) == {'image': {'repository': 'a', 'tag': 'v1'}}

    def test_anchored_value(self, patcher):
        doc = doc_of("""\
            image:
              tag: &t v1
            """)
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v2')

    def test_duplicate_field(self, patcher):
        doc = doc_of("""\
            image:
              tag: v1
              tag: v2
            """)
        with pytest.raises(MalformedDocument):
            patcher.patch(doc, PatchTarget('image', 'tag'), 'v3')

    def test_negative_occurrence(self):
        with pytest.raises(ValueError):
            PatchTarget('image', 'tag', occurrence=-1)
