"""
Unit tests for extraction pipeline.
"""

import pytest
from pipeline.document import Document, html_to_text
from pipeline.extractor import Extractor, build_record, stub_record
from pipeline.heuristics import HeuristicExtractor
from pipeline.jsonld import JSONLDExtractor
from pipeline.models import FieldResult, RawRecord
from pipeline.monitoring import MetricsCollector

JOB_URL = "https://careerviet.vn/en/search-job/backend-engineer.35B1A2C3.html"

JSONLD_PAGE = """
<html><head>
<script type="application/ld+json">{"@context": "https://schema.org", "@type": "WebSite", "name": </script>
<script type="application/ld+json">
{
  "@context": "https://schema.org",
  "@graph": [
    {"@type": "Organization", "name": "CareerViet"},
    {
      "@type": "JobPosting",
      "title": "Backend Engineer",
      "hiringOrganization": {"@type": "Organization", "name": "ABC Corp"},
      "datePosted": "2024-05-01",
      "description": "<p>Build APIs<br>
Line two",
      "jobLocation": [{"@type": "Place", "address": {"addressLocality": "Ho Chi Minh", "addressRegion": "HCM"}}],
      "baseSalary": {
        "@type": "MonetaryAmount",
        "currency": "USD",
        "value": {"@type": "QuantitativeValue", "minValue": 1000, "maxValue": 2000, "unitText": "MONTH"}
      },
      "employmentType": ["FULL_TIME"]
    }
  ]
}
</script>
</head><body><h1>Something else</h1></body></html>
"""

SCOPED_PAGE = """
<html><body>
  <div class="sidebar"><span class="location">Toàn quốc</span></div>
  <h1 class="job-title">Kỹ sư phần mềm</h1>
  <a class="company-name" href="/vi/nha-tuyen-dung/cong-ty-abc.35A1.html">Công ty ABC</a>
  <div class="job-summary">
    <dl><dt>Địa điểm</dt><dd>Hà Nội | Xem bản đồ</dd></dl>
    <table><tr><td>Lương</td><td>10 - 15 triệu</td></tr></table>
    <ul>
      <li><strong>Hình thức:</strong> Toàn thời gian</li>
      <li><span>Ngày cập nhật</span></li>
      <li>25/12/2024</li>
    </ul>
  </div>
  <div class="job-description"><p>Mô tả công việc</p></div>
</body></html>
"""

GENERIC_PAGE = """
<html><body>
  <div class="job-header"><span class="job-title-text">Data Analyst</span></div>
  <p class="company-info-name">ACME Vietnam</p>
  <span class="salary-range">$800 - $1,200</span>
  <span class="work-location">Đà Nẵng</span>
  <time>2024-06-01</time>
</body></html>
"""


class TestJSONLDExtractor:
    """Test JSON-LD extraction."""

    def test_extract_job_posting_from_graph(self):
        """Malformed blocks are skipped and @graph is searched."""
        fields = JSONLDExtractor().extract(Document(JSONLD_PAGE))

        assert fields['title'].value == "Backend Engineer"
        assert fields['company'].value == "ABC Corp"
        assert fields['location'].value == "Ho Chi Minh"
        assert fields['date_posted'].value == "2024-05-01"
        assert fields['job_type'].value == "FULL_TIME"
        assert fields['salary'].value['currency'] == "USD"
        assert fields['salary'].value['minValue'] == 1000
        assert "Build APIs" in fields['description_html'].value
        assert all(f.source == 'jsonld' for f in fields.values())

    def test_top_level_array(self):
        html = """
        <script type="application/ld+json">
        [{"@type": "BreadcrumbList"}, {"@type": ["JobPosting"], "name": "Kế toán", "hiringOrganization": "XYZ"}]
        </script>
        """
        fields = JSONLDExtractor().extract(Document(html))
        assert fields['title'].value == "Kế toán"
        assert fields['company'].value == "XYZ"

    def test_no_job_posting(self):
        html = '<script type="application/ld+json">{"@type": "Organization", "name": "X"}</script>'
        assert JSONLDExtractor().extract(Document(html)) == {}


class TestHeuristicExtractor:
    """Test scoped and generic heuristics."""

    def test_scoped_label_pairs(self):
        fields = HeuristicExtractor().extract_scoped(
            Document(SCOPED_PAGE), ['title', 'company', 'location', 'salary', 'job_type', 'date_posted'])

        assert fields['title'].value == "Kỹ sư phần mềm"
        assert fields['company'].value == "Công ty ABC"
        assert fields['location'].value == "Hà Nội | Xem bản đồ"
        assert fields['salary'].value == "10 - 15 triệu"
        assert fields['job_type'].value == "Toàn thời gian"
        assert fields['date_posted'].value == "25/12/2024"

    def test_scoped_ignores_sidebar(self):
        """Summary-scoped matching never reads outside the summary containers."""
        fields = HeuristicExtractor().extract_scoped(Document(SCOPED_PAGE), ['location'])
        assert fields['location'].value != "Toàn quốc"

    def test_inline_label_value(self):
        html = """
        <div class="job-info">
          <p>Salary: Negotiable</p>
          <p>Job type: Part-time</p>
        </div>
        """
        fields = HeuristicExtractor().extract_scoped(Document(html), ['salary', 'job_type'])
        assert fields['salary'].value == "Negotiable"
        assert fields['job_type'].value == "Part-time"

    def test_time_datetime_attribute(self):
        html = '<div class="job-meta"><time datetime="2024-06-01T08:00:00+07:00">1 day ago</time></div>'
        fields = HeuristicExtractor().extract_scoped(Document(html), ['date_posted'])
        assert fields['date_posted'].value == "2024-06-01T08:00:00+07:00"

    def test_generic_class_names(self):
        heuristics = HeuristicExtractor()
        document = Document(GENERIC_PAGE)
        fields = heuristics.extract_generic(
            document, ['title', 'company', 'location', 'salary', 'job_type', 'date_posted'])

        assert fields['title'].value == "Data Analyst"
        assert fields['company'].value == "ACME Vietnam"
        assert fields['location'].value == "Đà Nẵng"
        assert fields['salary'].value == "$800 - $1,200"
        assert fields['date_posted'].value == "2024-06-01"
        assert 'job_type' not in fields
        assert all(f.source == 'generic' for f in fields.values())


class TestExtractor:
    """Test the staged extractor and record building."""

    def test_jsonld_record(self):
        metrics = MetricsCollector()
        raw = Extractor(metrics=metrics).extract(Document(JSONLD_PAGE, url=JOB_URL))
        record = build_record(raw, JOB_URL)

        assert record.title == "Backend Engineer"
        assert record.company == "ABC Corp"
        assert record.location == "Ho Chi Minh"
        assert record.salary == "$1,000 - $2,000 / month"
        assert record.job_type == "Full-time"
        assert record.date_posted == "2024-05-01"
        assert record.description_text == "Build APIs Line two"
        assert metrics.field_sources['title'] == {'jsonld': 1}

    def test_jsonld_wins_over_heuristics(self):
        """Later stages only fill fields left empty."""
        raw = Extractor(metrics=MetricsCollector()).extract(Document(JSONLD_PAGE))
        assert raw.title == "Backend Engineer"
        assert raw.sources['title'] == 'jsonld'

    def test_scoped_record(self):
        metrics = MetricsCollector()
        raw = Extractor(metrics=metrics).extract(Document(SCOPED_PAGE))
        record = build_record(raw, JOB_URL)

        assert record.title == "Kỹ sư phần mềm"
        assert record.location == "Hà Nội"
        assert record.salary == "10,000,000 - 15,000,000 VND"
        assert record.job_type == "Full-time"
        assert record.date_posted == "25/12/2024"
        assert record.description_html == "<p>Mô tả công việc</p>"
        assert record.description_text == "Mô tả công việc"
        assert raw.sources['description_html'] == 'description'
        assert metrics.field_sources['salary'] == {'scoped': 1}

    def test_missing_fields_stay_none(self):
        metrics = MetricsCollector()
        raw = Extractor(metrics=metrics).extract(Document("<html><body><p>Hello</p></body></html>"))
        record = build_record(raw, JOB_URL)

        assert record.title is None
        assert record.salary is None
        assert record.description_text is None
        assert metrics.field_sources['title'] == {'missing': 1}

    def test_description_drops_invisible_content(self):
        html = """
        <div class="job-description">
          <p>Visible</p>
          <script>var x = 1;</script>
          <span class="hidden">secret</span>
          <div style="display:none">gone</div>
        </div>
        """
        raw = Extractor(metrics=MetricsCollector()).extract(Document(html))
        assert build_record(raw, JOB_URL).description_text == "Visible"


class TestRecords:
    def test_stub_record(self):
        data = stub_record(JOB_URL).to_dict()
        assert data['url'] == JOB_URL
        assert data['_source'] == "careerviet.vn"
        assert data['title'] is None
        assert data['description_text'] is None
        assert list(data)[-2:] == ['url', '_source']

    def test_raw_record_set_if_missing(self):
        raw = RawRecord()
        assert raw.set_if_missing('title', FieldResult("  First  ", 'jsonld'))
        assert not raw.set_if_missing('title', FieldResult("Second", 'scoped'))
        assert raw.title == "First"
        assert not raw.set_if_missing('company', FieldResult("   ", 'scoped'))
        with pytest.raises(KeyError):
            raw.set_if_missing('nonexistent', FieldResult("x", 'scoped'))

    def test_html_to_text(self):
        assert html_to_text("<p>A</p><style>p{}</style><p>B</p>") == "A B"
        assert html_to_text(None) == ""
