"""
Dify on AWS Architecture Diagram.

Generates the deployed topology: CloudFront/ALB edge, Fargate services,
Aurora, ElastiCache, S3 and the optional SES setup.

Dependencies:
    pip install diagrams  (Graphviz must be installed)

Usage:
    python -m dify_iac.architecture_diagram
    # Outputs: dify_architecture.png
"""

from diagrams import Cluster, Diagram, Edge
from diagrams.aws.compute import ECR, ElasticContainerService, Fargate
from diagrams.aws.database import Aurora, ElastiCache
from diagrams.aws.engagement import SimpleEmailServiceSes
from diagrams.aws.management import SystemsManagerParameterStore
from diagrams.aws.ml import Bedrock
from diagrams.aws.network import ALB, CloudFront, NATGateway, PublicSubnet, Route53
from diagrams.aws.security import ACM, SecretsManager, WAF
from diagrams.aws.storage import S3
from diagrams.aws.general import Users
from diagrams.onprem.network import Internet

from dify_iac.configs.constants import PORTS, SUBNET_CIDRS, VPC_CIDR

graph_attr = {
    "fontsize": "14",
    "bgcolor": "white",
    "pad": "0.5",
    "splines": "ortho",
    "nodesep": "0.8",
    "ranksep": "1.2",
    "dpi": "200",
}

node_attr = {
    "fontsize": "11",
    "height": "1.2",
    "width": "1.5",
}

edge_attr = {
    "fontsize": "9",
}


def render(filename: str = "dify_architecture") -> None:
    """Render the architecture diagram to <filename>.png."""
    with Diagram(
        "Dify on AWS\n(CloudFront, ECS Fargate, Aurora Serverless v2, ElastiCache)",
        filename=filename,
        show=False,
        direction="TB",
        graph_attr=graph_attr,
        node_attr=node_attr,
        edge_attr=edge_attr,
    ):
        users = Users("Users")

        with Cluster("Edge (us-east-1 certificate and WAF)"):
            dns = Route53("Route 53\nsub_domain.domain_name")
            waf = WAF("WAF Web ACL\nIP allow-list\n(optional)")
            cdn = CloudFront("CloudFront\nCaching disabled\nAll viewer headers")
            certificate = ACM("ACM Certificate\n(optional)")

        with Cluster("AWS Managed Services"):
            secrets = SecretsManager("Secrets Manager\nDB, Redis, keys, SMTP")
            parameters = SystemsManagerParameterStore("Parameter Store\nCelery broker URL")
            bucket = S3("Storage Bucket\nuploads + plugins")
            logs_bucket = S3("Access Log Bucket\nALB logs")
            registry = ECR("Docker Hub / ECR\nlanggenius/*")
            bedrock = Bedrock("Bedrock\n(model provider)")
            ses = SimpleEmailServiceSes("SES\nDKIM + SMTP\n(optional)")

        with Cluster(f"VPC: {VPC_CIDR}"):
            with Cluster(f"Public Subnets: {', '.join(SUBNET_CIDRS['public'])}"):
                public_subnet = PublicSubnet("Public Subnets")
                alb = ALB("Application Load Balancer\nCloudFront prefix list only")
                nat = NATGateway("NAT Gateway\nor t4g.nano NAT instance")

            with Cluster(f"Private Subnets: {', '.join(SUBNET_CIDRS['private'])}"):
                cluster = ElasticContainerService("ECS Cluster\nFARGATE / FARGATE_SPOT")

                with Cluster("Web Service"):
                    web = Fargate(f"dify-web\n:{PORTS['web']}")

                with Cluster("API Service (one task)"):
                    api = Fargate(f"dify-api\n:{PORTS['api']}")
                    worker = Fargate("worker\nCelery")
                    sandbox = Fargate(f"dify-sandbox\n:{PORTS['sandbox']}")
                    plugin_daemon = Fargate(f"plugin-daemon\n:{PORTS['plugin_daemon']}")

                aurora = Aurora(f"Aurora PostgreSQL\nServerless v2\npgvector\n:{PORTS['postgres']}")
                cache = ElastiCache(f"ElastiCache Valkey 8\nTLS + auth token\n:{PORTS['redis']}")

        internet = Internet("LLM provider APIs\nMarketplace")

        users >> Edge(label="HTTPS") >> dns >> cdn
        waf >> Edge(style="dotted") >> cdn
        certificate >> Edge(style="dotted") >> cdn
        cdn >> Edge(label="HTTP :80", color="darkgreen") >> alb
        public_subnet >> Edge(style="invis") >> alb

        alb >> Edge(label="/*", color="blue") >> web
        alb >> Edge(label="/console/api/* /api/* /v1/* /files/*", color="blue") >> api
        alb >> Edge(label="/e/*", color="blue") >> plugin_daemon
        alb >> Edge(label="access logs", style="dashed") >> logs_bucket

        cluster >> Edge(style="dotted") >> [web, api]
        api >> Edge(label="localhost") >> [sandbox, plugin_daemon]
        [api, worker, plugin_daemon] >> Edge(label="SQL", color="darkblue") >> aurora
        [api, worker, plugin_daemon] >> Edge(label="rediss://", color="red") >> cache
        [api, worker, plugin_daemon] >> Edge(label="files", color="orange") >> bucket
        [api, worker] >> Edge(style="dashed") >> bedrock
        worker >> Edge(label="SMTP :587", style="dashed") >> ses

        secrets >> Edge(label="ECS secrets", style="dotted") >> [api, worker, plugin_daemon]
        parameters >> Edge(label="CELERY_BROKER_URL", style="dotted") >> worker
        registry >> Edge(label="pull", style="dotted") >> cluster
        [web, api, worker, sandbox, plugin_daemon] >> Edge(style="dashed") >> nat >> internet

    print(f"Diagram generated: {filename}.png")


if __name__ == "__main__":
    render()
